"""Conversion of raw source items into canonical releases.

Every provider funnels its records through ``normalize`` so the episode and
batch invariants hold uniformly. Source data is inconsistent by nature, so
nothing here rejects a record: a bad field degrades to its zero value.
"""

import re

from nyaadex.models import RawItem, Release
from nyaadex.parsing.release_name import ReleaseNameParser, get_default_parser
from nyaadex.parsing.units import parse_count, parse_date, parse_size

BATCH_KEYWORDS_PATTERN = re.compile(
    r"\b(batch|complete|collection|seasons?|parts?)\b",
    re.IGNORECASE,
)


def looks_like_batch(title: str, episode_numbers: tuple[int, ...]) -> bool:
    """Guess whether a release bundles several episodes.

    Args:
        title: Release title.
        episode_numbers: Episode numbers parsed from the title.

    Returns:
        True if the title names several episodes or a batch keyword.
    """
    if len(episode_numbers) > 1:
        return True
    return bool(BATCH_KEYWORDS_PATTERN.search(title))


def normalize(
    raw: RawItem,
    parser: ReleaseNameParser | None = None,
    curated: bool = False,
) -> Release:
    """Build a ``Release`` from a raw item.

    Args:
        raw: Raw item from a feed or a curated record.
        parser: Release-name parser (guessit-backed by default).
        curated: Whether the item comes from a curated catalog. Curated
            entries are complete releases, flagged as best/confirmed, and
            report unknown seeders as -1.

    Returns:
        The canonical release.
    """
    parser = parser or get_default_parser()
    metadata = parser.parse(raw.title)

    episode = -1
    if len(metadata.episode_numbers) == 1 and metadata.episode_numbers[0] > 0:
        episode = metadata.episode_numbers[0]

    is_batch = curated or looks_like_batch(raw.title, metadata.episode_numbers)
    if is_batch:
        episode = -1

    size_bytes = raw.size_bytes if raw.size_bytes is not None else parse_size(raw.formatted_size)

    return Release(
        name=raw.title,
        release_date=parse_date(raw.raw_date),
        size_bytes=max(size_bytes, 0),
        formatted_size=raw.formatted_size,
        seeders=max(parse_count(raw.seeders, -1 if curated else 0), -1),
        leechers=max(parse_count(raw.leechers), 0),
        download_count=max(parse_count(raw.downloads), 0),
        page_link=raw.page_link,
        download_url=raw.download_url,
        info_hash=raw.info_hash,
        resolution=metadata.resolution,
        is_batch=is_batch,
        episode_number=episode,
        release_group=raw.release_group or metadata.release_group,
        is_best_release=curated,
        confirmed=curated,
    )
