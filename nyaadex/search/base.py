"""Common plumbing for torrent providers.

Every provider is an async context manager owning one ``httpx.AsyncClient``
and exposes the same entry points:

- ``get_latest()``, ``search(options)``, ``smart_search(options)`` never
  raise for network or parse problems; they log and return ``[]``.
- ``resolve_magnet_link(release)`` raises ``MagnetNotFoundError`` when the
  detail page has no magnet link and ``MagnetFetchError`` when the page
  cannot be fetched. Both mean "no magnet available right now".
- ``get_info_hash(release)`` and ``get_capabilities()`` are plain accessors.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import httpx
from bs4 import BeautifulSoup, Tag

from nyaadex.config import settings
from nyaadex.logger import get_logger
from nyaadex.models import ProviderCapabilities, RawItem, Release, SearchOptions
from nyaadex.parsing.normalizer import normalize
from nyaadex.parsing.release_name import ReleaseNameParser

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

# User agent for requests
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Statuses that mean the host is down or blocking us rather than a bad request
UNAVAILABLE_STATUSES = (403, 429, 502, 503, 504, 520, 521, 522, 523, 524)

MAGNET_SELECTOR = 'a.card-footer-item, a[href^="magnet:"]'


# =============================================================================
# Exceptions
# =============================================================================


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class ProviderUnavailableError(ProviderError):
    """Raised when a provider host is unreachable, times out, or blocks us."""

    pass


class MagnetNotFoundError(ProviderError):
    """Raised when a detail page contains no magnet link."""

    pass


class MagnetFetchError(ProviderError):
    """Raised when a detail page cannot be fetched to look for a magnet link."""

    pass


# =============================================================================
# Helper Functions
# =============================================================================


def normalize_base_url(url: str) -> str:
    """Add an https scheme if missing and drop the trailing slash.

    Args:
        url: Host or URL ("nyaa.si", "https://nyaa.si/").

    Returns:
        Base URL like "https://nyaa.si".
    """
    url = url.strip()
    if not url.startswith("http"):
        url = f"https://{url}"
    return url.rstrip("/")


def extract_magnet_link(element: Tag) -> str:
    """Extract the first magnet link from a page or element.

    Args:
        element: BeautifulSoup document or Tag to search.

    Returns:
        Magnet link string or empty string if not found.
    """
    for anchor in element.select(MAGNET_SELECTOR):
        href = anchor.get("href")
        if isinstance(href, list):
            href = href[0] if href else ""
        if href and href.startswith("magnet:"):
            return href

    return ""


# =============================================================================
# Base Provider
# =============================================================================


class BaseProvider(ABC):
    """Async base class for torrent providers.

    Example:
        async with NyaaProvider() as provider:
            releases = await provider.search(SearchOptions(query="frieren 1080p"))
            magnet = await provider.resolve_magnet_link(releases[0])
    """

    name = "provider"

    def __init__(
        self,
        timeout: float | None = None,
        parser: ReleaseNameParser | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            timeout: Request timeout in seconds (settings value by default).
            parser: Release-name parser used when normalizing results.
        """
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.parser = parser
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseProvider":
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized.

        Returns:
            The httpx async client.

        Raises:
            RuntimeError: If client is not initialized (not in context manager).
        """
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a GET request, mapping transport failures to provider errors.

        Args:
            url: URL to fetch.
            params: Optional query parameters.
            timeout: Optional per-request timeout overriding the client default.

        Returns:
            The response, whatever its status.

        Raises:
            ProviderUnavailableError: On connection failure or timeout.
            ProviderError: On any other transport error.
        """
        logger.debug("fetching_page", provider=self.name, url=url, params=params)

        kwargs: dict[str, Any] = {"params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            return await self.client.get(url, **kwargs)
        except httpx.ConnectError as e:
            logger.error("connection_error", provider=self.name, url=url, error=str(e))
            raise ProviderUnavailableError(
                f"Cannot connect to {self.name}. Site may be blocked or down: {e}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error("timeout_error", provider=self.name, url=url, error=str(e))
            raise ProviderUnavailableError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("request_error", provider=self.name, url=url, error=str(e))
            raise ProviderError(f"Request failed: {e}") from e

    async def _fetch_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Fetch a page and return its body.

        Args:
            url: URL to fetch.
            params: Optional query parameters.
            timeout: Optional per-request timeout.

        Returns:
            Response body as text.

        Raises:
            ProviderUnavailableError: If the host is unavailable.
            ProviderError: For other errors.
        """
        response = await self._get(url, params=params, timeout=timeout)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("http_error", provider=self.name, url=url, status=status)
            if status in UNAVAILABLE_STATUSES:
                raise ProviderUnavailableError(
                    f"{self.name} returned error {status}. Try a different mirror."
                ) from e
            raise ProviderError(f"HTTP error {status}") from e

        return response.text

    def _to_releases(self, items: Iterable[RawItem], curated: bool = False) -> list[Release]:
        """Normalize raw items with this provider's release-name parser."""
        return [normalize(item, self.parser, curated=curated) for item in items]

    # =========================================================================
    # Public API
    # =========================================================================

    @abstractmethod
    async def get_latest(self) -> list[Release]:
        """Return the most recent releases."""

    @abstractmethod
    async def search(self, options: SearchOptions) -> list[Release]:
        """Return releases for an explicit query."""

    @abstractmethod
    async def smart_search(self, options: SearchOptions) -> list[Release]:
        """Return releases for structured media metadata."""

    @abstractmethod
    def get_capabilities(self) -> ProviderCapabilities:
        """Describe what this provider supports."""

    def get_info_hash(self, release: Release) -> str:
        """Return the stored info hash of a release, or ""."""
        return release.info_hash or ""

    async def resolve_magnet_link(self, release: Release) -> str:
        """Fetch a release's detail page and extract its magnet link.

        The link is also stored on ``release.magnet_link``.

        Args:
            release: Release whose ``page_link`` points at a detail page.

        Returns:
            Magnet URI.

        Raises:
            MagnetNotFoundError: If the page has no magnet link.
            MagnetFetchError: If the page cannot be fetched.
        """
        if not release.page_link:
            raise MagnetNotFoundError(f"No detail page for: {release.name}")

        try:
            html = await self._fetch_text(release.page_link)
        except ProviderError as e:
            logger.error(
                "magnet_fetch_failed",
                provider=self.name,
                url=release.page_link,
                error=str(e),
            )
            raise MagnetFetchError(f"Could not fetch magnet link for: {release.name}") from e

        soup = BeautifulSoup(html, "lxml")
        magnet = extract_magnet_link(soup)

        if not magnet:
            logger.warning("magnet_not_found", provider=self.name, url=release.page_link)
            raise MagnetNotFoundError(f"Magnet link not found on page: {release.page_link}")

        release.magnet_link = magnet
        return magnet
