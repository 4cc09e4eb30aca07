"""Search query synthesis from structured media metadata.

Release groups name files in many ways ("Title S2 - 05", "Title Season 02
E05v2", "Title II - 05"), so a smart search sends one boolean-style query
whose groups are alternations the index understands:

    (title)(season alternation)(part)(episode alternation)(resolution)

Nyaa treats ``|`` inside parentheses as OR and double quotes as phrases.
"""

import re

import structlog

from nyaadex.models import MediaDescriptor, SearchOptions

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

SEASON_PATTERN = re.compile(r"\b(season|s)\s*(\d{1,2})\b", re.IGNORECASE)
PART_PATTERN = re.compile(r"\b(part|p)\s*(\d{1,2})\b", re.IGNORECASE)

ROMAN_III_PATTERN = re.compile(r"\biii\b", re.IGNORECASE)
ROMAN_II_PATTERN = re.compile(r"\bii\b", re.IGNORECASE)

# Titles like "Title: Subtitle" are often released as just "Title"
MIN_COLON_PREFIX_LENGTH = 8

DEFAULT_RESOLUTIONS = "(360|480|720|1080)"


# =============================================================================
# Helper Functions
# =============================================================================


def zeropad(value: int) -> str:
    """Render a number with at least two digits."""
    return f"{value:02d}" if 0 <= value < 10 else str(value)


def extract_season_number(title: str) -> tuple[int, str]:
    """Find a season marker ("season 2", "S2") in a title.

    Args:
        title: Title to scan.

    Returns:
        Tuple of (season number or 0, title with the marker removed).
    """
    match = SEASON_PATTERN.search(title)
    if match:
        return int(match.group(2)), title.replace(match.group(0), "", 1).strip()
    return 0, title


def extract_part_number(title: str) -> tuple[int, str]:
    """Find a part marker ("part 2", "P2") in a title.

    Args:
        title: Title to scan.

    Returns:
        Tuple of (part number or 0, title with the marker removed).
    """
    match = PART_PATTERN.search(title)
    if match:
        return int(match.group(2)), title.replace(match.group(0), "", 1).strip()
    return 0, title


def clean_title(title: str, strip_roman_numerals: bool) -> str:
    """Normalize a candidate title for use inside a query."""
    clean = title.replace(":", " ").replace("-", " ")
    clean = re.sub(r"\s+", " ", clean).strip().lower()
    if strip_roman_numerals:
        clean = ROMAN_III_PATTERN.sub("", clean)
        clean = ROMAN_II_PATTERN.sub("", clean)
        clean = re.sub(r"\s+", " ", clean)
    return clean.strip()


def build_title_string(titles: list[str]) -> str:
    """Compose the title clause: one group, alternation if several titles."""
    if len(titles) == 1:
        return f"({titles[0]})"
    quoted = [f'"{t}"' for t in titles]
    return f"({'|'.join(quoted)})"


def build_episode_string(episode: int) -> str:
    """Compose the episode alternation for common numbering styles."""
    padded = zeropad(episode)
    return f"({padded}|e{padded}|e{padded}v|{padded}v|ep{padded}|ep{episode})"


def build_season_string(season: int) -> str:
    """Compose the season alternation, empty if no season is known."""
    if season == 0:
        return ""
    padded = zeropad(season)
    return f'("season {season}"|"season {padded}"|"s{season}"|"s{padded}")'


def build_part_string(part: int) -> str:
    """Compose the part clause, empty if no part is known."""
    if part == 0:
        return ""
    return f'("part {part}")'


def build_batch_string(media: MediaDescriptor) -> str:
    """Compose the alternation of batch naming conventions."""
    episode_count = zeropad(media.episode_count)
    keywords = [
        f'"01 - {episode_count}"',
        f'"01 ~ {episode_count}"',
        '"Batch"',
        '"Complete"',
        '"+ OVA"',
        '"+ Specials"',
        '"+ Special"',
        '"Seasons"',
        '"Parts"',
    ]
    return f"({'|'.join(keywords)})"


# =============================================================================
# Title Analysis
# =============================================================================


def collect_title_candidates(media: MediaDescriptor) -> tuple[list[str], int, int]:
    """Derive clean title candidates plus season and part hints.

    The first season and part found across the titles win; later titles
    without markers never reset them.

    Args:
        media: Media metadata.

    Returns:
        Tuple of (deduplicated query-ready titles, season or 0, part or 0).
    """
    romaji = media.romaji_title or ""
    english = media.english_title or ""
    all_titles = [t for t in [romaji, english, *media.synonyms] if t]

    season = 0
    part = 0
    titles: list[str] = []

    for title in all_titles:
        found_season, clean = extract_season_number(title)
        found_part, clean = extract_part_number(clean)
        if found_season and not season:
            season = found_season
        if found_part and not part:
            part = found_part
        if clean:
            titles.append(clean)

    # The season may only be spelled out in a synonym
    if not season:
        for synonym in media.synonyms:
            found_season, _ = extract_season_number(synonym)
            if found_season:
                season = found_season
                break

    if not season and not part and not titles:
        titles.extend(t for t in [romaji, english] if t)

    for title in (t for t in [romaji, english] if t):
        prefix, colon, _ = title.partition(":")
        if colon and len(prefix) > MIN_COLON_PREFIX_LENGTH:
            titles.append(prefix)

    if not season:
        if ROMAN_III_PATTERN.search(romaji) or ROMAN_III_PATTERN.search(english):
            season = 3
        elif ROMAN_II_PATTERN.search(romaji) or ROMAN_II_PATTERN.search(english):
            season = 2

    cleaned = [clean_title(t, strip_roman_numerals=season != 0) for t in titles]
    unique_titles = list(dict.fromkeys(t for t in cleaned if t))

    return unique_titles, season, part


# =============================================================================
# Query Synthesis
# =============================================================================


def build_smart_search_queries(options: SearchOptions) -> list[str]:
    """Synthesize provider queries for a smart search.

    An explicit ``options.query`` replaces the title clause, but episode,
    batch and resolution groups are still appended. A second query using the
    absolute episode number is added for multi-season shows that some
    groups number continuously.

    Args:
        options: Search options with media metadata.

    Returns:
        One or two query strings, or an empty list if no title is usable.
    """
    media = options.media
    season = 0
    part = 0

    if options.query:
        title_str = f"({options.query})"
    else:
        titles, season, part = collect_title_candidates(media)
        if not titles:
            logger.warning(
                "query_synthesis_no_titles",
                romaji_title=media.romaji_title,
                english_title=media.english_title,
            )
            return []
        title_str = build_title_string(titles)

    single_movie = media.is_single_episode_movie

    clause = build_season_string(season) + build_part_string(part)
    if options.batch and media.can_batch and not single_movie:
        clause += build_batch_string(media)
    elif not single_movie:
        clause += build_episode_string(options.episode_number)

    resolution_str = f"({options.resolution})" if options.resolution else DEFAULT_RESOLUTIONS

    queries = [f"{title_str}{clause}{resolution_str}"]

    if not options.batch and media.absolute_season_offset > 0 and not single_movie:
        absolute_episode = options.episode_number + media.absolute_season_offset
        queries.append(f"{title_str}({absolute_episode}){resolution_str}")

    logger.debug("queries_synthesized", queries=queries, season=season, part=part)
    return queries
