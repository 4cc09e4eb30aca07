"""Sukebei torrent provider.

Sukebei is Nyaa's adult sister site and serves the same RSS format. It is a
supplementary source: searches use the caller's query verbatim, no query
synthesis.
"""

from nyaadex.config import settings
from nyaadex.logger import get_logger
from nyaadex.models import ProviderCapabilities, ProviderType, Release, SearchOptions
from nyaadex.parsing.release_name import ReleaseNameParser
from nyaadex.search.nyaa import NyaaProvider

logger = get_logger(__name__)

# Art - Anime
SUKEBEI_CATEGORY = "1_1"


class SukebeiProvider(NyaaProvider):
    """Async provider for sukebei.nyaa.si."""

    name = "sukebei"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        parser: ReleaseNameParser | None = None,
    ) -> None:
        """Initialize Sukebei provider.

        Args:
            base_url: Host or URL of the index (settings value by default).
            timeout: Request timeout in seconds.
            parser: Release-name parser used when normalizing results.
        """
        super().__init__(
            base_url=base_url or settings.sukebei_url,
            category=SUKEBEI_CATEGORY,
            timeout=timeout,
            parser=parser,
        )

    async def smart_search(self, options: SearchOptions) -> list[Release]:
        """Smart search is not supported; always returns []."""
        logger.debug("smart_search_unsupported", provider=self.name)
        return []

    def get_capabilities(self) -> ProviderCapabilities:
        """Describe the Sukebei provider."""
        return ProviderCapabilities(
            can_smart_search=False,
            smart_search_filters=[],
            supports_adult=True,
            type=ProviderType.SPECIAL,
        )
