"""Tests for the Nyaa and Sukebei providers.

Covers feed URL construction, façade error handling, smart search
aggregation, magnet link resolution and HTTP error mapping.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from nyaadex.models import (
    MediaDescriptor,
    MediaStatus,
    ProviderType,
    Release,
    SearchOptions,
    SmartSearchFilter,
)
from nyaadex.search.base import (
    MagnetFetchError,
    MagnetNotFoundError,
    ProviderError,
    ProviderUnavailableError,
    normalize_base_url,
)
from nyaadex.search.nyaa import NyaaProvider, search_nyaa
from nyaadex.search.sukebei import SukebeiProvider

# =============================================================================
# Sample Fixtures
# =============================================================================

FEED_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:nyaa="https://nyaa.si/xmlns/nyaa" version="2.0">
    <channel>
        <title>Nyaa</title>
        {items}
    </channel>
</rss>
"""

ITEM_TEMPLATE = """
        <item>
            <title>{title}</title>
            <link>https://nyaa.si/download/{id}.torrent</link>
            <guid isPermaLink="true">https://nyaa.si/view/{id}</guid>
            <pubDate>Fri, 29 Sep 2023 16:31:03 -0000</pubDate>
            <nyaa:seeders>{seeders}</nyaa:seeders>
            <nyaa:leechers>3</nyaa:leechers>
            <nyaa:downloads>100</nyaa:downloads>
            <nyaa:infoHash>hash{id}</nyaa:infoHash>
            <nyaa:size>1.4 GiB</nyaa:size>
        </item>
"""


def make_feed(*entries: tuple[int, str, int]) -> str:
    """Build a feed from (id, title, seeders) tuples."""
    items = "".join(
        ITEM_TEMPLATE.format(id=item_id, title=title, seeders=seeders)
        for item_id, title, seeders in entries
    )
    return FEED_TEMPLATE.format(items=items)


SEASON_FEED = make_feed(
    (1, "[SubsPlease] Example Title S2 - 05 (1080p)", 900),
    (2, "[SubsPlease] Example Title S2 - 06 (1080p)", 800),
    (3, "[Judas] Example Title S2 - 01 ~ 12 (1080p)", 700),
)

ABSOLUTE_FEED = make_feed(
    (4, "[Erai-raws] Example Title - 17 [1080p]", 500),
    (1, "[SubsPlease] Example Title S2 - 05 (1080p)", 900),
)

DETAIL_HTML = """
<html>
<body>
<div class="panel panel-default">
    <div class="panel-footer clearfix">
        <a href="/download/1.torrent" class="card-footer-item"><i class="fa fa-download"></i>Download Torrent</a>
        or <a href="magnet:?xt=urn:btih:0123456789abcdef&amp;dn=Example" class="card-footer-item">Magnet</a>
    </div>
</div>
</body>
</html>
"""

DETAIL_HTML_NO_MAGNET = """
<html><body><div class="panel-footer"><a href="/download/1.torrent">Download</a></div></body></html>
"""

EXAMPLE_MEDIA = MediaDescriptor(
    id=100,
    romaji_title="Example Title Season 2",
    episode_count=12,
    status=MediaStatus.FINISHED,
    absolute_season_offset=12,
)


def url_router(routes: dict[str, str]):
    """Build a fake fetch that answers by URL substring."""

    async def fake_fetch(url, *args, **kwargs):
        for fragment, body in routes.items():
            if fragment in url:
                return body
        raise ProviderUnavailableError(f"unexpected url {url}")

    return fake_fetch


# =============================================================================
# Helper Tests
# =============================================================================


class TestNormalizeBaseUrl:
    """Tests for base URL normalization."""

    def test_bare_host(self):
        assert normalize_base_url("nyaa.si") == "https://nyaa.si"

    def test_scheme_and_trailing_slash(self):
        assert normalize_base_url("https://nyaa.land/") == "https://nyaa.land"
        assert normalize_base_url("http://localhost:8080") == "http://localhost:8080"


class TestBuildSearchUrl:
    """Tests for feed URL construction."""

    def test_search_url(self):
        provider = NyaaProvider(base_url="nyaa.si", category="1_2")

        assert provider.build_search_url("frieren 05") == (
            "https://nyaa.si/?page=rss&q=frieren%2005&c=1_2&f=0&s=seeders&o=desc"
        )

    def test_query_is_fully_encoded(self):
        provider = NyaaProvider(base_url="nyaa.si", category="1_2")
        url = provider.build_search_url('(a)("s2"|"s02")')

        assert "q=%28a%29%28%22s2%22%7C%22s02%22%29&" in url

    def test_latest_url_has_empty_query(self):
        provider = NyaaProvider(base_url="nyaa.si", category="1_2")
        assert "?page=rss&q=&c=1_2" in provider.build_search_url("")

    def test_defaults_from_settings(self):
        provider = NyaaProvider()

        assert provider.base_url == "https://nyaa.si"
        assert provider.category == "1_2"


# =============================================================================
# Nyaa Provider Tests
# =============================================================================


class TestNyaaProvider:
    """Tests for NyaaProvider façade methods."""

    @pytest.mark.asyncio
    async def test_search(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = SEASON_FEED
                releases = await provider.search(SearchOptions(query="example title"))

        assert len(releases) == 3
        assert all(isinstance(r, Release) for r in releases)
        assert releases[0].episode_number == 5
        assert releases[0].seeders == 900
        assert releases[2].is_batch is True
        assert "q=example%20title" in mock_fetch.call_args[0][0]

    @pytest.mark.asyncio
    async def test_search_failure_returns_empty(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.side_effect = ProviderUnavailableError("down")
                releases = await provider.search(SearchOptions(query="example"))

        assert releases == []

    @pytest.mark.asyncio
    async def test_search_garbage_feed_returns_empty(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = "<html>Cloudflare</html>"
                releases = await provider.search(SearchOptions(query="example"))

        assert releases == []

    @pytest.mark.asyncio
    async def test_search_out_of_range_fields_degrade(self, stub_parser):
        """Test that overflowing sizes and calendar-edge dates do not escape search."""
        feed = FEED_TEMPLATE.format(
            items="""
        <item>
            <title>[Group] Example - 01 (1080p)</title>
            <link>https://nyaa.si/download/7.torrent</link>
            <pubDate>9999-12-31T23:59:59-01:00</pubDate>
            <nyaa:size>{digits} GiB</nyaa:size>
        </item>
""".format(digits="9" * 400)
        )

        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = feed
                releases = await provider.search(SearchOptions(query="example"))

        assert len(releases) == 1
        assert releases[0].release_date == ""
        assert releases[0].size_bytes == 0
        assert releases[0].episode_number == 1

    @pytest.mark.asyncio
    async def test_get_latest(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = SEASON_FEED
                releases = await provider.get_latest()

        assert len(releases) == 3
        assert "q=&" in mock_fetch.call_args[0][0]

    @pytest.mark.asyncio
    async def test_get_latest_failure_returns_empty(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.side_effect = ProviderError("HTTP error 404")
                assert await provider.get_latest() == []

    @pytest.mark.asyncio
    async def test_smart_search_merges_and_filters(self, stub_parser):
        """Test merging of both queries, dedup, and per-season/absolute filtering."""
        fake_fetch = url_router({"%2817%29": ABSOLUTE_FEED, "%2805%7C": SEASON_FEED})
        options = SearchOptions(media=EXAMPLE_MEDIA, episode_number=5)

        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", side_effect=fake_fetch) as mock_fetch:
                releases = await provider.smart_search(options)

        assert mock_fetch.call_count == 2
        # Episode 6 and the batch are dropped, the duplicate of episode 5 is merged
        assert [r.name for r in releases] == [
            "[SubsPlease] Example Title S2 - 05 (1080p)",
            "[Erai-raws] Example Title - 17 [1080p]",
        ]

    @pytest.mark.asyncio
    async def test_smart_search_survives_failed_sub_query(self, stub_parser):
        fake_fetch = url_router({"%2805%7C": SEASON_FEED})
        options = SearchOptions(media=EXAMPLE_MEDIA, episode_number=5)

        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", side_effect=fake_fetch):
                releases = await provider.smart_search(options)

        assert [r.episode_number for r in releases] == [5]

    @pytest.mark.asyncio
    async def test_smart_search_batch_is_not_filtered(self, stub_parser):
        options = SearchOptions(media=EXAMPLE_MEDIA, batch=True)

        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = SEASON_FEED
                releases = await provider.smart_search(options)

        # A batch request sends a single query
        assert mock_fetch.call_count == 1
        assert len(releases) == 3
        assert "Batch" in mock_fetch.call_args[0][0]

    @pytest.mark.asyncio
    async def test_smart_search_without_titles(self, stub_parser):
        async with NyaaProvider(parser=stub_parser) as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                releases = await provider.smart_search(SearchOptions(episode_number=1))

        assert releases == []
        mock_fetch.assert_not_called()

    def test_capabilities(self):
        caps = NyaaProvider().get_capabilities()

        assert caps.can_smart_search is True
        assert caps.supports_adult is False
        assert caps.type == ProviderType.MAIN
        assert set(caps.smart_search_filters) == set(SmartSearchFilter)

    def test_get_info_hash(self):
        provider = NyaaProvider()

        assert provider.get_info_hash(Release(name="x", info_hash="abc")) == "abc"
        assert provider.get_info_hash(Release(name="x")) == ""

    @pytest.mark.asyncio
    async def test_search_nyaa_convenience(self):
        with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
            mock_fetch.return_value = make_feed((9, "[Group] Title - 01 (720p)", 1))
            releases = await search_nyaa("title")

        assert len(releases) == 1
        assert releases[0].download_url == "https://nyaa.si/download/9.torrent"


# =============================================================================
# Magnet Resolution Tests
# =============================================================================


class TestResolveMagnetLink:
    """Tests for detail-page magnet resolution."""

    @pytest.mark.asyncio
    async def test_magnet_found(self):
        release = Release(name="Example", page_link="https://nyaa.si/view/1")

        async with NyaaProvider() as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = DETAIL_HTML
                magnet = await provider.resolve_magnet_link(release)

        assert magnet == "magnet:?xt=urn:btih:0123456789abcdef&dn=Example"
        assert release.magnet_link == magnet

    @pytest.mark.asyncio
    async def test_magnet_not_found(self):
        release = Release(name="Example", page_link="https://nyaa.si/view/1")

        async with NyaaProvider() as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = DETAIL_HTML_NO_MAGNET
                with pytest.raises(MagnetNotFoundError):
                    await provider.resolve_magnet_link(release)

        assert release.magnet_link == ""

    @pytest.mark.asyncio
    async def test_fetch_failure(self):
        release = Release(name="Example", page_link="https://nyaa.si/view/1")

        async with NyaaProvider() as provider:
            with patch.object(NyaaProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.side_effect = ProviderUnavailableError("down")
                with pytest.raises(MagnetFetchError) as exc_info:
                    await provider.resolve_magnet_link(release)

        assert not isinstance(exc_info.value, MagnetNotFoundError)

    @pytest.mark.asyncio
    async def test_no_page_link(self):
        async with NyaaProvider() as provider:
            with pytest.raises(MagnetNotFoundError):
                await provider.resolve_magnet_link(Release(name="Example"))


# =============================================================================
# HTTP Plumbing Tests
# =============================================================================


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchText:
    """Tests for status and transport error mapping."""

    def test_client_requires_context_manager(self):
        with pytest.raises(RuntimeError, match="async with"):
            _ = NyaaProvider().client

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        provider = NyaaProvider()
        async with provider:
            assert provider.client is not None
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_success(self):
        provider = NyaaProvider()
        provider._client = mock_client(lambda request: httpx.Response(200, text="ok"))

        assert await provider._fetch_text("https://nyaa.si/") == "ok"
        await provider.__aexit__(None, None, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 429, 503, 522])
    async def test_unavailable_status(self, status):
        provider = NyaaProvider()
        provider._client = mock_client(lambda request: httpx.Response(status))

        with pytest.raises(ProviderUnavailableError):
            await provider._fetch_text("https://nyaa.si/")
        await provider.__aexit__(None, None, None)

    @pytest.mark.asyncio
    async def test_other_status(self):
        provider = NyaaProvider()
        provider._client = mock_client(lambda request: httpx.Response(404))

        with pytest.raises(ProviderError) as exc_info:
            await provider._fetch_text("https://nyaa.si/")

        assert not isinstance(exc_info.value, ProviderUnavailableError)
        await provider.__aexit__(None, None, None)

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = NyaaProvider()
        provider._client = mock_client(handler)

        with pytest.raises(ProviderUnavailableError, match="blocked or down"):
            await provider._fetch_text("https://nyaa.si/")
        await provider.__aexit__(None, None, None)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = NyaaProvider()
        provider._client = mock_client(handler)

        with pytest.raises(ProviderUnavailableError, match="timed out"):
            await provider._fetch_text("https://nyaa.si/")
        await provider.__aexit__(None, None, None)


# =============================================================================
# Sukebei Provider Tests
# =============================================================================


class TestSukebeiProvider:
    """Tests for SukebeiProvider."""

    def test_search_url(self):
        provider = SukebeiProvider()
        url = provider.build_search_url("example")

        assert url.startswith("https://sukebei.nyaa.si/?page=rss&q=example")
        assert "&c=1_1&" in url

    def test_capabilities(self):
        caps = SukebeiProvider().get_capabilities()

        assert caps.can_smart_search is False
        assert caps.supports_adult is True
        assert caps.type == ProviderType.SPECIAL
        assert caps.smart_search_filters == []

    @pytest.mark.asyncio
    async def test_smart_search_unsupported(self):
        async with SukebeiProvider() as provider:
            with patch.object(SukebeiProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                options = SearchOptions(media=EXAMPLE_MEDIA, episode_number=5)
                assert await provider.smart_search(options) == []

        mock_fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_uses_query_verbatim(self, stub_parser):
        async with SukebeiProvider(parser=stub_parser) as provider:
            with patch.object(SukebeiProvider, "_fetch_text", new_callable=AsyncMock) as mock_fetch:
                mock_fetch.return_value = make_feed((5, "[Group] Example - 02 (1080p)", 10))
                releases = await provider.search(SearchOptions(query="example"))

        assert [r.episode_number for r in releases] == [2]
        assert "q=example&" in mock_fetch.call_args[0][0]
