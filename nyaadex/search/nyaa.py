"""Nyaa torrent provider.

Searches the Nyaa RSS feed, which carries seeders, leechers, downloads,
info hash and size for each item in the ``nyaa:`` namespace. Smart search
synthesizes queries from media metadata, runs them concurrently, merges and
filters the results by episode.

Note: Nyaa has mirrors; the host is configurable through settings or the
constructor.
"""

from itertools import chain
from urllib.parse import quote

from nyaadex.config import settings
from nyaadex.logger import get_logger
from nyaadex.models import (
    ProviderCapabilities,
    ProviderType,
    RawItem,
    Release,
    SearchOptions,
    SmartSearchFilter,
)
from nyaadex.parsing.feed import extract_feed_items
from nyaadex.parsing.release_name import ReleaseNameParser
from nyaadex.search.base import BaseProvider, ProviderError, normalize_base_url
from nyaadex.search.pipeline import dedupe_by_download_url, fetch_all, filter_by_episode
from nyaadex.search.query import build_smart_search_queries

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Feed results are always requested sorted by seeders, best first
DEFAULT_SORT = "seeders"

SMART_SEARCH_FILTERS = [
    SmartSearchFilter.BATCH,
    SmartSearchFilter.EPISODE_NUMBER,
    SmartSearchFilter.RESOLUTION,
    SmartSearchFilter.QUERY,
]


# =============================================================================
# Nyaa Provider
# =============================================================================


class NyaaProvider(BaseProvider):
    """Async provider for nyaa.si.

    Example:
        async with NyaaProvider() as provider:
            options = SearchOptions(media=media, episode_number=5)
            for release in await provider.smart_search(options):
                print(release.to_display_string())
    """

    name = "nyaa"

    def __init__(
        self,
        base_url: str | None = None,
        category: str | None = None,
        timeout: float | None = None,
        parser: ReleaseNameParser | None = None,
    ) -> None:
        """Initialize Nyaa provider.

        Args:
            base_url: Host or URL of the index (settings value by default).
            category: Category id (settings value by default).
            timeout: Request timeout in seconds.
            parser: Release-name parser used when normalizing results.
        """
        super().__init__(timeout=timeout, parser=parser)
        self.base_url = normalize_base_url(base_url or settings.nyaa_url)
        self.category = category or settings.nyaa_category

    def build_search_url(self, query: str, sort_by: str = DEFAULT_SORT) -> str:
        """Build the RSS feed URL for a query.

        Args:
            query: Search query, empty for the latest uploads.
            sort_by: Sort field.

        Returns:
            Feed URL.
        """
        query_string = (
            f"page=rss&q={quote(query, safe='')}&c={self.category}&f=0&s={sort_by}&o=desc"
        )
        return f"{self.base_url}/?{query_string}"

    async def _fetch_feed(self, query: str) -> list[RawItem]:
        """Fetch and extract the feed for one query.

        Raises:
            ProviderUnavailableError: If the site is unavailable.
            ProviderError: For other errors.
        """
        url = self.build_search_url(query)
        rss_text = await self._fetch_text(url)
        return extract_feed_items(rss_text)

    async def get_latest(self) -> list[Release]:
        """Return the latest uploads in the configured category."""
        logger.info("fetching_latest", provider=self.name, base_url=self.base_url)

        try:
            items = await self._fetch_feed("")
        except ProviderError as e:
            logger.error("latest_failed", provider=self.name, error=str(e))
            return []

        releases = self._to_releases(items)
        logger.info("latest_found", provider=self.name, count=len(releases))
        return releases

    async def search(self, options: SearchOptions) -> list[Release]:
        """Search the feed with the caller's query verbatim.

        Args:
            options: Search options; only ``query`` is used.

        Returns:
            Releases in feed order (seeders descending), or [] on failure.
        """
        logger.info("searching", provider=self.name, query=options.query)

        try:
            items = await self._fetch_feed(options.query)
        except ProviderError as e:
            logger.error("search_failed", provider=self.name, query=options.query, error=str(e))
            return []

        releases = self._to_releases(items)
        logger.info("search_results_found", provider=self.name, count=len(releases))
        return releases

    async def smart_search(self, options: SearchOptions) -> list[Release]:
        """Search using queries synthesized from media metadata.

        All synthesized queries run concurrently. Results are merged in query
        order, deduplicated by download URL and, unless a batch was requested,
        restricted to the requested episode (per-season or absolute number).

        Args:
            options: Search options with media metadata.

        Returns:
            Matching releases, or [] if no query could be built.
        """
        queries = build_smart_search_queries(options)
        if not queries:
            logger.warning("smart_search_no_queries", provider=self.name)
            return []

        logger.info("smart_searching", provider=self.name, queries=queries)

        results = await fetch_all(queries, self._fetch_feed)
        unique_items = dedupe_by_download_url(chain.from_iterable(results))
        releases = self._to_releases(unique_items)

        if not options.batch:
            releases = filter_by_episode(
                releases,
                options.episode_number,
                options.media.absolute_season_offset,
            )
            logger.info(
                "results_after_episode_filter",
                provider=self.name,
                episode=options.episode_number,
                count=len(releases),
            )

        return releases

    def get_capabilities(self) -> ProviderCapabilities:
        """Describe the Nyaa provider."""
        return ProviderCapabilities(
            can_smart_search=True,
            smart_search_filters=list(SMART_SEARCH_FILTERS),
            supports_adult=False,
            type=ProviderType.MAIN,
        )


# =============================================================================
# Convenience Functions
# =============================================================================


async def search_nyaa(query: str) -> list[Release]:
    """Search Nyaa for a query.

    Convenience function that creates a provider and performs a search.

    Args:
        query: Search query.

    Returns:
        List of releases.

    Example:
        releases = await search_nyaa("frieren 1080p")
        for r in releases:
            print(r.to_display_string())
    """
    async with NyaaProvider() as provider:
        return await provider.search(SearchOptions(query=query))


async def smart_search_nyaa(options: SearchOptions) -> list[Release]:
    """Smart-search Nyaa for media metadata.

    Args:
        options: Search options with media metadata.

    Returns:
        List of releases.
    """
    async with NyaaProvider() as provider:
        return await provider.smart_search(options)
