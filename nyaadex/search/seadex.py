"""SeaDex curated release provider.

SeaDex (releases.moe) is a human-curated catalog of the best release for a
show, keyed by AniList id. Its records point at Nyaa detail pages; each one
is scraped for live statistics and a download link. A failed scrape keeps
the catalog data for that entry instead of failing the batch.

API: PocketBase collection ``entries`` with ``trs`` (torrents) expanded.
"""

from dataclasses import replace
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nyaadex.config import settings
from nyaadex.logger import get_logger
from nyaadex.models import (
    MediaDescriptor,
    ProviderCapabilities,
    ProviderType,
    RawItem,
    Release,
    SearchOptions,
)
from nyaadex.parsing.release_name import ReleaseNameParser
from nyaadex.search.base import BaseProvider, ProviderError
from nyaadex.search.pipeline import gather_bounded

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

SEADEX_RECORDS_URL = "https://releases.moe/api/collections/entries/records"

ACCEPTED_TRACKER = "Nyaa"
ACCEPTED_HOSTS = ("nyaa.si", "www.nyaa.si")
REDACTED_HASH = "<redacted>"

UNKNOWN_TITLE = "Unknown Title"

# Labels of the statistic cells on a Nyaa detail page
STAT_SEEDERS = "Seeders:"
STAT_LEECHERS = "Leechers:"
STAT_DOWNLOADS = ("Downloads:", "Completed:")
STAT_FILE_SIZE = "File size:"

DOWNLOAD_SELECTOR = "a.card-footer-item[href*='/download/'], .panel-footer a[href*='/download/']"


# =============================================================================
# Exceptions
# =============================================================================


class SeaDexError(ProviderError):
    """Base exception for SeaDex errors."""

    pass


class SeaDexAPIError(SeaDexError):
    """Raised when the records endpoint answers with a non-success status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        super().__init__(f"API request failed with status {status_code}: {reason}")


# =============================================================================
# API Models
# =============================================================================


class SeaDexFile(BaseModel):
    """File inside a curated torrent."""

    length: int = 0
    path: str = ""


class SeaDexTorrent(BaseModel):
    """Curated torrent entry (``tr``)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    info_hash: str = Field(default="", alias="infoHash")
    tracker: str = ""
    url: str = ""
    release_group: str = Field(default="", alias="releaseGroup")
    dual_audio: bool = Field(default=False, alias="dualAudio")
    is_best: bool = Field(default=False, alias="isBest")
    files: list[SeaDexFile] = Field(default_factory=list)
    created: str = ""

    @property
    def total_size(self) -> int:
        """Sum of file lengths in bytes."""
        return sum(f.length for f in self.files)


class SeaDexExpand(BaseModel):
    """Expanded relations of a record."""

    trs: list[SeaDexTorrent] = Field(default_factory=list)


class SeaDexRecord(BaseModel):
    """Catalog entry for one media item."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    al_id: int | None = Field(default=None, alias="alID")
    notes: str = ""
    expand: SeaDexExpand = Field(default_factory=SeaDexExpand)


# =============================================================================
# Helper Functions
# =============================================================================


def is_accepted_torrent(tr: SeaDexTorrent) -> bool:
    """Check that a curated torrent is public and hosted on Nyaa."""
    if not tr.info_hash or tr.info_hash == REDACTED_HASH:
        return False
    if tr.tracker != ACCEPTED_TRACKER:
        return False
    if not tr.url:
        return False
    return urlparse(tr.url).hostname in ACCEPTED_HOSTS


def to_raw_item(tr: SeaDexTorrent, title: str) -> RawItem:
    """Build the baseline raw item for a curated torrent, before scraping.

    Args:
        tr: Curated torrent.
        title: Media title used to name the release.

    Returns:
        Raw item with catalog data only (no statistics, no download URL).
    """
    dual_audio_tag = " [Dual-Audio]" if tr.dual_audio else ""
    return RawItem(
        title=f"[{tr.release_group}] {title}{dual_audio_tag}",
        page_link=tr.url,
        raw_date=tr.created,
        info_hash=tr.info_hash,
        size_bytes=tr.total_size,
        release_group=tr.release_group,
    )


def parse_detail_page(html: str, baseline: RawItem) -> RawItem:
    """Overlay statistics scraped from a Nyaa detail page on a baseline item.

    Args:
        html: Detail page HTML.
        baseline: Catalog-only raw item for the same torrent.

    Returns:
        Raw item with title, statistics, size and download URL filled in
        where the page provides them.
    """
    soup = BeautifulSoup(html, "lxml")

    title_elem = soup.select_one("h3.panel-title")
    title = title_elem.get_text(strip=True) if title_elem else ""

    stats: dict[str, str] = {}
    for label in soup.select(".panel-body .row div.col-md-1"):
        value_elem = label.find_next_sibling()
        if value_elem is None:
            continue
        stats.setdefault(label.get_text(strip=True), value_elem.get_text(strip=True))

    download_url = ""
    download_elem = soup.select_one(DOWNLOAD_SELECTOR)
    if download_elem:
        href = download_elem.get("href")
        if isinstance(href, list):
            href = href[0] if href else ""
        if href:
            download_url = urljoin(baseline.page_link, href)

    return replace(
        baseline,
        title=title or baseline.title,
        seeders=stats.get(STAT_SEEDERS, ""),
        leechers=stats.get(STAT_LEECHERS, ""),
        downloads=next((stats[label] for label in STAT_DOWNLOADS if label in stats), ""),
        formatted_size=stats.get(STAT_FILE_SIZE, ""),
        download_url=download_url,
    )


# =============================================================================
# SeaDex Provider
# =============================================================================


class SeaDexProvider(BaseProvider):
    """Async provider for the SeaDex curated catalog.

    Example:
        async with SeaDexProvider() as provider:
            media = MediaDescriptor(id=154587, romaji_title="Sousou no Frieren")
            releases = await provider.search(SearchOptions(media=media))
    """

    name = "seadex"

    def __init__(
        self,
        api_url: str | None = None,
        timeout: float | None = None,
        enrichment_timeout: float | None = None,
        concurrency: int | None = None,
        parser: ReleaseNameParser | None = None,
    ) -> None:
        """Initialize SeaDex provider.

        Args:
            api_url: Records endpoint (settings override or releases.moe).
            timeout: Request timeout in seconds for the records endpoint.
            enrichment_timeout: Timeout in seconds for each detail scrape.
            concurrency: Maximum concurrent detail scrapes.
            parser: Release-name parser used when normalizing results.
        """
        super().__init__(timeout=timeout, parser=parser)
        self.api_url = api_url or settings.seadex_url or SEADEX_RECORDS_URL
        self.enrichment_timeout = (
            enrichment_timeout if enrichment_timeout is not None else settings.enrichment_timeout
        )
        self.concurrency = concurrency or settings.enrichment_concurrency

    async def _fetch_records(self, media_id: int) -> list[SeaDexRecord]:
        """Fetch catalog records for a media id.

        Raises:
            SeaDexAPIError: If the endpoint returns a non-success status.
            SeaDexError: If the response cannot be parsed.
            ProviderUnavailableError: If the endpoint is unreachable.
        """
        params = {
            "page": "1",
            "perPage": "1",
            "filter": f'alID="{media_id}"',
            "skipTotal": "1",
            "expand": "trs",
        }

        response = await self._get(self.api_url, params=params)
        if not response.is_success:
            logger.error("seadex_api_error", status=response.status_code, media_id=media_id)
            raise SeaDexAPIError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
            items = data.get("items") or []
            return [SeaDexRecord.model_validate(item) for item in items]
        except (ValueError, AttributeError, ValidationError) as e:
            logger.error("seadex_parse_error", media_id=media_id, error=str(e))
            raise SeaDexError(f"Failed to parse API response: {e}") from e

    async def _enrich(self, item: RawItem) -> RawItem:
        """Scrape an entry's detail page, falling back to the baseline item."""
        try:
            html = await self._fetch_text(item.page_link, timeout=self.enrichment_timeout)
        except ProviderError as e:
            logger.warning("seadex_enrichment_failed", url=item.page_link, error=str(e))
            return item

        return parse_detail_page(html, item)

    async def find_releases(self, media: MediaDescriptor) -> list[Release]:
        """Return the curated releases for a media item.

        Args:
            media: Media metadata; ``id`` is required.

        Returns:
            Curated releases (always batches), or [] if none or on failure.
        """
        if media.id is None:
            logger.info("seadex_missing_media_id")
            return []

        try:
            records = await self._fetch_records(media.id)
        except ProviderError as e:
            logger.error("seadex_records_failed", media_id=media.id, error=str(e))
            return []

        if not records:
            logger.info("seadex_no_records", media_id=media.id)
            return []

        record = records[0]
        if not record.expand.trs:
            logger.info("seadex_record_without_torrents", media_id=media.id)
            return []

        title = media.romaji_title or media.english_title or UNKNOWN_TITLE
        baseline = [to_raw_item(tr, title) for tr in record.expand.trs if is_accepted_torrent(tr)]

        enriched = await gather_bounded(baseline, self._enrich, self.concurrency)
        releases = self._to_releases(enriched, curated=True)

        logger.info("seadex_releases_found", media_id=media.id, count=len(releases))
        return releases

    async def get_latest(self) -> list[Release]:
        """The catalog has no notion of latest uploads; always returns []."""
        return []

    async def search(self, options: SearchOptions) -> list[Release]:
        """Return curated releases for ``options.media``."""
        return await self.find_releases(options.media)

    async def smart_search(self, options: SearchOptions) -> list[Release]:
        """Return curated releases for ``options.media``."""
        return await self.find_releases(options.media)

    def get_capabilities(self) -> ProviderCapabilities:
        """Describe the SeaDex provider."""
        return ProviderCapabilities(
            can_smart_search=True,
            smart_search_filters=[],
            supports_adult=False,
            type=ProviderType.SPECIAL,
        )
