"""Shared test fixtures."""

import re

import pytest

from nyaadex.parsing.release_name import ReleaseMetadata

EPISODE_PATTERN = re.compile(r" - (\d+)(?:v\d)?(?:\s*[-~]\s*(\d+))?")
RESOLUTION_PATTERN = re.compile(r"(\d{3,4}p)")
GROUP_PATTERN = re.compile(r"^\[([^\]]+)\]")


class StubParser:
    """Deterministic release-name parser for "[Group] Title - 05 (1080p)" titles.

    A range such as "01 ~ 12" yields both bounds as episode numbers.
    """

    def __init__(self, overrides: dict[str, ReleaseMetadata] | None = None):
        self.overrides = overrides or {}
        self.calls: list[str] = []

    def parse(self, title: str) -> ReleaseMetadata:
        self.calls.append(title)
        if title in self.overrides:
            return self.overrides[title]

        episodes: tuple[int, ...] = ()
        match = EPISODE_PATTERN.search(title)
        if match:
            episodes = tuple(int(g) for g in match.groups() if g)

        resolution = RESOLUTION_PATTERN.search(title)
        group = GROUP_PATTERN.search(title)
        return ReleaseMetadata(
            episode_numbers=episodes,
            resolution=resolution.group(1) if resolution else "",
            release_group=group.group(1) if group else "",
        )


@pytest.fixture
def stub_parser():
    """Release-name parser that does not depend on guessit heuristics."""
    return StubParser()
