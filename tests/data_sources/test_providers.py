"""
Tests for the provider adapters with their HTTP layer mocked.

Tests cover:
- Request construction (params, auth header)
- Configuration failures reported as results, not raised
- RSS parsing through feedparser
"""

from unittest.mock import AsyncMock, patch

import pytest

from data_sources.exceptions import FetchError
from data_sources.models import AdapterStatus, ErrorKind, QueryParams
from data_sources.payloads import Island
from data_sources.providers import NEWS_FEEDS, EventbriteSource, NOAATideSource, RSSNewsSource


RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Hawaii News Now</title>
<item>
  <title>Kilauea eruption pauses</title>
  <link>https://www.hawaiinewsnow.com/2024/05/06/kilauea/?utm_source=rss</link>
  <description>&lt;p&gt;Scientists on the Big Island say the eruption at Kilauea paused overnight.&lt;/p&gt;</description>
  <pubDate>Mon, 06 May 2024 16:00:00 GMT</pubDate>
</item>
</channel></rss>
"""


class TestNOAATideSource:
    """NOAA CO-OPS predictions."""

    @pytest.mark.asyncio
    async def test_requests_island_station(self, clock):
        """The island's station and a hi/lo interval are requested."""
        source = NOAATideSource(clock=clock)
        payload = {"predictions": [{"t": "2024-05-06 09:12", "v": "1.9", "type": "H"}]}

        with patch.object(source, "_get_json", AsyncMock(return_value=payload)) as get_json:
            result = await source.fetch(QueryParams(island=Island.MAUI))

        params = get_json.call_args.kwargs["params"]
        assert params["station"] == "1615680"
        assert params["interval"] == "hilo"
        assert params["begin_date"] == "20240506"
        assert result.ok
        assert result.records[0].identity_key.startswith("tide:maui:")

    @pytest.mark.asyncio
    async def test_missing_island_is_configuration_failure(self, clock):
        """No island: CONFIGURATION failure, no request."""
        source = NOAATideSource(clock=clock)
        with patch.object(source, "_get_json", AsyncMock()) as get_json:
            result = await source.fetch(QueryParams())
        assert result.error.kind == ErrorKind.CONFIGURATION
        get_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_is_failure(self, clock):
        """HTTP errors from the transport surface as HTTP failures."""
        source = NOAATideSource(clock=clock)
        error = FetchError("HTTP 502", status_code=502)
        with patch.object(source, "_get_json", AsyncMock(side_effect=error)):
            result = await source.fetch(QueryParams(island=Island.OAHU))
        assert result.status == AdapterStatus.FAILURE
        assert result.error.status_code == 502
        assert result.error.source_name == "noaa_tides"


class TestEventbriteSource:
    """Eventbrite search."""

    @pytest.mark.asyncio
    async def test_without_key(self, clock):
        """No API key: CONFIGURATION failure instead of an exception."""
        source = EventbriteSource(api_key=None, clock=clock)
        result = await source.fetch(QueryParams())
        assert result.error.kind == ErrorKind.CONFIGURATION

    @pytest.mark.asyncio
    async def test_bearer_header_and_window(self, clock):
        """The key travels as a Bearer token; the range follows days_ahead."""
        source = EventbriteSource(api_key="tok", clock=clock)
        with patch.object(source, "_get_json", AsyncMock(return_value={"events": []})) as get_json:
            result = await source.fetch(QueryParams(days_ahead=3))

        kwargs = get_json.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert kwargs["params"]["start_date.range_end"] == "2024-05-09T18:00:00Z"
        assert result.ok
        assert result.records == []


class TestRSSNewsSource:
    """RSS feeds."""

    @pytest.mark.asyncio
    async def test_parses_feed(self, clock):
        """Items become articles with canonical identities."""
        source = RSSNewsSource(NEWS_FEEDS[0], clock=clock)
        with patch.object(source, "_get_text", AsyncMock(return_value=RSS)):
            result = await source.fetch(QueryParams())

        assert result.ok
        [record] = result.records
        assert record.identity_key == "https://www.hawaiinewsnow.com/2024/05/06/kilauea"
        assert record.payload.publisher.name == "Hawaii News Now"
        assert "paused overnight" in record.payload.summary

    @pytest.mark.asyncio
    async def test_garbage_is_malformed(self, clock):
        """A body that is not a feed is a MALFORMED failure."""
        source = RSSNewsSource(NEWS_FEEDS[0], clock=clock)
        with patch.object(source, "_get_text", AsyncMock(return_value="<html><body>oops")):
            result = await source.fetch(QueryParams())
        assert result.error.kind == ErrorKind.MALFORMED

    def test_metadata(self):
        """Feed metadata exposes the publisher and URL."""
        meta = RSSNewsSource(NEWS_FEEDS[1]).metadata()
        assert meta.name == "rss_khon2"
        assert meta.display_name == "KHON2"
        assert meta.domain == "news"
