"""Parsing of source data into canonical releases.

Feed extraction, size/date parsing, release-name metadata and the
normalizer that turns raw items into ``Release`` objects.
"""

from nyaadex.parsing.feed import extract_feed_items
from nyaadex.parsing.normalizer import looks_like_batch, normalize
from nyaadex.parsing.release_name import (
    GuessitParser,
    ReleaseMetadata,
    ReleaseNameParser,
    get_default_parser,
)
from nyaadex.parsing.units import parse_count, parse_date, parse_size

__all__ = [
    # Feed
    "extract_feed_items",
    # Normalizer
    "normalize",
    "looks_like_batch",
    # Release names
    "GuessitParser",
    "ReleaseMetadata",
    "ReleaseNameParser",
    "get_default_parser",
    # Units
    "parse_count",
    "parse_date",
    "parse_size",
]
