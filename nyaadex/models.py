"""Data models shared by every provider.

``RawItem`` is the provider-agnostic intermediate produced by feed
extraction or by adapting a curated record. ``Release`` is the canonical
output entity built from it by the normalizer.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, model_validator

# =============================================================================
# Enums
# =============================================================================


class MediaStatus(str, Enum):
    """Airing status of a media item."""

    FINISHED = "FINISHED"
    RELEASING = "RELEASING"
    NOT_YET_RELEASED = "NOT_YET_RELEASED"
    CANCELLED = "CANCELLED"
    HIATUS = "HIATUS"


class MediaFormat(str, Enum):
    """Content format of a media item."""

    TV = "TV"
    TV_SHORT = "TV_SHORT"
    MOVIE = "MOVIE"
    SPECIAL = "SPECIAL"
    OVA = "OVA"
    ONA = "ONA"
    MUSIC = "MUSIC"


class ProviderType(str, Enum):
    """Classification of a provider."""

    MAIN = "main"
    SPECIAL = "special"


class SmartSearchFilter(str, Enum):
    """Options a provider honours when synthesizing queries."""

    BATCH = "batch"
    EPISODE_NUMBER = "episodeNumber"
    RESOLUTION = "resolution"
    QUERY = "query"


# =============================================================================
# Request Models
# =============================================================================


class MediaDescriptor(BaseModel):
    """Structured metadata of the media item being searched for.

    Attributes:
        id: External media id (used by the curated source).
        romaji_title: Romanized title.
        english_title: English title.
        synonyms: Alternative titles.
        episode_count: Number of episodes, if known.
        status: Airing status.
        format: Content format.
        absolute_season_offset: Episodes in all prior seasons, for indexes
            that number episodes continuously across seasons.
    """

    id: int | None = Field(default=None, description="External media id")
    romaji_title: str = Field(default="", description="Romanized title")
    english_title: str = Field(default="", description="English title")
    synonyms: list[str] = Field(default_factory=list, description="Alternative titles")
    episode_count: int = Field(default=0, ge=0, description="Episode count")
    status: MediaStatus | None = Field(default=None, description="Airing status")
    format: MediaFormat | None = Field(default=None, description="Content format")
    absolute_season_offset: int = Field(default=0, ge=0, description="Absolute episode offset")

    @property
    def is_single_episode_movie(self) -> bool:
        """Check if the media is a movie released as a single episode."""
        return self.format == MediaFormat.MOVIE and self.episode_count == 1

    @property
    def can_batch(self) -> bool:
        """Check if a complete batch release can exist for the media."""
        return self.status == MediaStatus.FINISHED and self.episode_count > 0


class SearchOptions(BaseModel):
    """Options for a search or smart search request."""

    media: MediaDescriptor = Field(default_factory=MediaDescriptor)
    query: str = Field(default="", description="Explicit query, overrides synthesis")
    batch: bool = Field(default=False, description="Look for batch releases")
    episode_number: int = Field(default=0, ge=0, description="Requested episode number")
    resolution: str = Field(default="", description="Resolution filter, e.g. 1080")


class ProviderCapabilities(BaseModel):
    """Static description of what a provider supports."""

    can_smart_search: bool
    smart_search_filters: list[SmartSearchFilter] = Field(default_factory=list)
    supports_adult: bool = False
    type: ProviderType = ProviderType.MAIN


# =============================================================================
# Release Models
# =============================================================================


@dataclass(frozen=True)
class RawItem:
    """Flat key/value record extracted from a source, before normalization.

    Every value is the untouched string from the source. ``size_bytes`` and
    ``release_group`` are only set by curated sources that already know them.
    """

    title: str = ""
    page_link: str = ""
    download_url: str = ""
    raw_date: str = ""
    seeders: str = ""
    leechers: str = ""
    downloads: str = ""
    info_hash: str = ""
    formatted_size: str = ""
    size_bytes: int | None = None
    release_group: str = ""


class Release(BaseModel):
    """Canonical downloadable entry (one episode or one batch).

    Attributes:
        name: Release title.
        release_date: UTC ISO-8601 timestamp, empty if unknown.
        size_bytes: Size in bytes, 0 if unparseable.
        formatted_size: Size string as displayed by the source.
        seeders: Number of seeders, -1 if not reported.
        leechers: Number of leechers.
        download_count: Number of completed downloads.
        page_link: Detail page URL.
        download_url: Direct .torrent URL.
        info_hash: BitTorrent info hash, may be empty.
        magnet_link: Magnet URI, empty until resolved.
        resolution: Video resolution, empty if unknown.
        is_batch: Whether the release bundles several episodes.
        episode_number: Single episode number, -1 for batches or unknown.
        release_group: Release group, empty if unknown.
        is_best_release: Set by curated sources.
        confirmed: Set by curated sources.
    """

    name: str = Field(..., description="Release title")
    release_date: str = Field(default="", description="UTC ISO-8601 timestamp")
    size_bytes: int = Field(default=0, ge=0, description="Size in bytes")
    formatted_size: str = Field(default="", description="Size as displayed by the source")
    seeders: int = Field(default=0, ge=-1, description="Number of seeders")
    leechers: int = Field(default=0, ge=0, description="Number of leechers")
    download_count: int = Field(default=0, ge=0, description="Number of downloads")
    page_link: str = Field(default="", description="Detail page URL")
    download_url: str = Field(default="", description="Direct .torrent URL")
    info_hash: str = Field(default="", description="Info hash")
    magnet_link: str = Field(default="", description="Magnet link")
    resolution: str = Field(default="", description="Video resolution")
    is_batch: bool = Field(default=False, description="Batch release")
    episode_number: int = Field(default=-1, ge=-1, description="Episode number")
    release_group: str = Field(default="", description="Release group")
    is_best_release: bool = Field(default=False, description="Curated best release")
    confirmed: bool = Field(default=False, description="Curated confirmation")

    @model_validator(mode="after")
    def _batch_has_no_episode(self) -> "Release":
        if self.is_batch:
            self.episode_number = -1
        return self

    def to_display_string(self) -> str:
        """Format release for display.

        Returns:
            Formatted string with key information.
        """
        resolution_str = f" [{self.resolution}]" if self.resolution else ""
        seeds_str = f"S:{self.seeders}" if self.seeders >= 0 else "S:?"
        size_str = self.formatted_size or "N/A"
        return f"{self.name}{resolution_str} | {size_str} | {seeds_str}"
