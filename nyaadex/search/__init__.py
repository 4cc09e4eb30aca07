"""Search module for anime torrent providers.

This module provides async providers for Nyaa, Sukebei and the SeaDex
curated catalog, plus the query synthesis and aggregation steps they share.
"""

from nyaadex.search.base import (
    BaseProvider,
    MagnetFetchError,
    MagnetNotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from nyaadex.search.nyaa import NyaaProvider, search_nyaa, smart_search_nyaa
from nyaadex.search.query import build_smart_search_queries
from nyaadex.search.seadex import SeaDexAPIError, SeaDexError, SeaDexProvider
from nyaadex.search.sukebei import SukebeiProvider

__all__ = [
    # Base
    "BaseProvider",
    "ProviderError",
    "ProviderUnavailableError",
    "MagnetNotFoundError",
    "MagnetFetchError",
    # Nyaa
    "NyaaProvider",
    "search_nyaa",
    "smart_search_nyaa",
    "build_smart_search_queries",
    # Sukebei
    "SukebeiProvider",
    # SeaDex
    "SeaDexProvider",
    "SeaDexError",
    "SeaDexAPIError",
]
