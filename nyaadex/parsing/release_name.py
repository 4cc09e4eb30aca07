"""Release-name metadata extraction.

Free-form release titles ("[Group] Title - 05 (1080p) [ABCD1234].mkv") are
handed to a release-name parser. The normalizer depends only on the
``ReleaseNameParser`` protocol; ``GuessitParser`` is the default backend.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from guessit import guessit
from guessit.api import GuessitException

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReleaseMetadata:
    """Metadata recovered from a release title."""

    episode_numbers: tuple[int, ...] = ()
    resolution: str = ""
    release_group: str = ""


class ReleaseNameParser(Protocol):
    """Anything that can turn a release title into ``ReleaseMetadata``."""

    def parse(self, title: str) -> ReleaseMetadata: ...


def _as_int_list(value: Any) -> list[int]:
    """Coerce a guessit episode value (int, str or list) to a list of ints."""
    if value is None:
        return []
    values = value if isinstance(value, list) else [value]
    numbers: list[int] = []
    for item in values:
        try:
            numbers.append(int(item))
        except (TypeError, ValueError):
            continue
    return numbers


class GuessitParser:
    """Release-name parser backed by guessit.

    Example:
        parser = GuessitParser()
        meta = parser.parse("[SubsPlease] Frieren - 05 (1080p) [ABCD1234].mkv")
        print(meta.episode_numbers, meta.resolution, meta.release_group)
    """

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        """Initialize the parser.

        Args:
            options: guessit options. Titles are parsed as episodes by default.
        """
        self.options = options if options is not None else {"type": "episode"}

    def parse(self, title: str) -> ReleaseMetadata:
        """Parse a release title.

        Args:
            title: Free-form release title.

        Returns:
            Extracted metadata. Empty metadata if the title cannot be parsed.
        """
        if not title:
            return ReleaseMetadata()

        try:
            guess = guessit(title, self.options)
        except GuessitException as e:
            logger.warning("release_name_parse_failed", title=title, error=str(e))
            return ReleaseMetadata()

        episodes = _as_int_list(guess.get("episode"))
        if not episodes:
            episodes = _as_int_list(guess.get("absolute_episode"))

        # Keep order, drop repeats ("05 v2" style duplicates)
        unique_episodes = tuple(dict.fromkeys(episodes))

        return ReleaseMetadata(
            episode_numbers=unique_episodes,
            resolution=str(guess.get("screen_size") or ""),
            release_group=str(guess.get("release_group") or ""),
        )


_default_parser: ReleaseNameParser | None = None


def get_default_parser() -> ReleaseNameParser:
    """Return the shared default release-name parser."""
    global _default_parser
    if _default_parser is None:
        _default_parser = GuessitParser()
    return _default_parser
