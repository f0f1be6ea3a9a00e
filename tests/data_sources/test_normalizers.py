"""
Tests for the payload normalizers.

Tests cover:
- Deterministic identity keys from stable fields only
- Defaults substituted for partially missing fields
- Malformed payloads raise NormalizationError
- Domain defaults (fallback surf, synthetic tides, weekly event)
"""

import time
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW
from core.clock import HAWAII_TZ
from data_sources.exceptions import NormalizationError
from data_sources.normalizers.common import parse_datetime, strip_html
from data_sources.normalizers.events import (
    detect_island,
    event_identity,
    extract_jsonld_blocks,
    fallback_events,
    next_saturday_morning,
    normalize_eventbrite,
    normalize_jsonld_events,
)
from data_sources.normalizers.news import canonical_url, infer_category, normalize_feed_entries, summarize
from data_sources.normalizers.surf import (
    SurfSpot,
    assess_wave_quality,
    fallback_surf_records,
    normalize_open_meteo_marine,
    normalize_surfline,
    spot_catalogue,
)
from data_sources.normalizers.tides import normalize_noaa_tides, synthetic_tides
from data_sources.normalizers.weather import (
    degrees_to_cardinal,
    normalize_noaa_weather,
    normalize_open_meteo_weather,
)
from data_sources.payloads import (
    AlertSeverity,
    EventCategory,
    Island,
    NewsCategory,
    NewsPublisher,
    TideType,
    WaveQuality,
)


PUBLISHER = NewsPublisher(name="Hawaii News Now", domain="hawaiinewsnow.com")
PIPELINE = SurfSpot("pipe", "Pipeline", 21.66, -158.05, Island.OAHU)


# =============================================================
# TEST: Common helpers
# =============================================================

class TestCommonHelpers:
    """Shared parsing helpers."""

    def test_parse_datetime_formats(self):
        """ISO with Z, RFC-822 and garbage."""
        assert parse_datetime("2024-05-06T18:00:00Z") == NOW
        assert parse_datetime("Mon, 06 May 2024 18:00:00 GMT") == NOW
        assert parse_datetime("not a date") is None
        assert parse_datetime("") is None

    def test_naive_uses_default_zone(self):
        """Naive values take the supplied zone."""
        parsed = parse_datetime("2024-05-06T08:00:00", default_tz=HAWAII_TZ)
        assert parsed == NOW

    def test_strip_html(self):
        """Tags removed, whitespace collapsed."""
        assert strip_html("<p>Aloha <b>kakou</b></p>\n\n") == "Aloha kakou"


# =============================================================
# TEST: News
# =============================================================

class TestNewsNormalizer:
    """RSS entries to NewsArticle records."""

    def test_canonical_url_drops_tracking(self):
        """utm_* and fbclid go, real parameters stay."""
        url = "HTTPS://News.Example.com/story/?utm_source=x&id=5&fbclid=abc#top"
        assert canonical_url(url) == "https://news.example.com/story?id=5"

    def test_same_story_same_identity(self):
        """Tracking variants of one link collapse to one identity."""
        entries = [
            {"title": "Story", "link": "https://n.example/a?utm_medium=rss", "published": "2024-05-06T17:00:00Z"},
            {"title": "Story", "link": "https://n.example/a/", "published": "2024-05-06T17:00:00Z"},
        ]
        records = normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW)
        assert records[0].identity_key == records[1].identity_key

    def test_old_and_incomplete_entries_skipped(self):
        """Entries older than 48 h or without title/link are dropped."""
        entries = [
            {"title": "Fresh", "link": "https://n.example/fresh", "published": "2024-05-06T10:00:00Z"},
            {"title": "Old", "link": "https://n.example/old", "published": "2024-05-03T10:00:00Z"},
            {"title": "", "link": "https://n.example/untitled"},
            {"title": "No link"},
        ]
        records = normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW)
        assert [r.payload.title for r in records] == ["Fresh"]

    def test_struct_time_and_missing_date(self):
        """feedparser *_parsed tuples are read; undated entries use now."""
        entries = [
            {"title": "Parsed", "link": "https://n.example/p", "published_parsed": time.struct_time((2024, 5, 6, 12, 0, 0, 0, 127, 0))},
            {"title": "Undated", "link": "https://n.example/u"},
        ]
        records = normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW)
        assert records[0].timestamp == datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)
        assert records[1].timestamp == NOW

    def test_max_items_per_feed(self):
        """Only the first ten entries are considered."""
        entries = [{"title": f"S{i}", "link": f"https://n.example/{i}"} for i in range(15)]
        assert len(normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW)) == 10

    def test_base_score_is_zero(self):
        """Relevance is left to the scoring policy."""
        entries = [{"title": "Honolulu news", "link": "https://n.example/h"}]
        assert normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW)[0].score == 0.0

    def test_infer_category_first_match(self):
        """Category keywords are checked in order; LOCAL otherwise."""
        assert infer_category("Breaking: storm warning", "") == NewsCategory.BREAKING
        assert infer_category("Heavy rain expected", "") == NewsCategory.WEATHER
        assert infer_category("Neighborhood board meets", "") == NewsCategory.LOCAL

    def test_feed_default_category(self):
        """A feed's category replaces LOCAL only; keyword matches still win."""
        entries = [
            {"title": "Neighborhood board meets", "link": "https://n.example/board"},
            {"title": "Heavy rain expected", "link": "https://n.example/rain"},
        ]
        records = normalize_feed_entries(entries, PUBLISHER, "rss_test", NOW, default_category=NewsCategory.CULTURE)
        assert [r.payload.category for r in records] == [NewsCategory.CULTURE, NewsCategory.WEATHER]

    def test_summarize(self):
        """Short sentences skipped, long content truncated with an ellipsis."""
        content = "Hi. " + "This sentence is long enough to be kept in the summary. " * 3
        summary = summarize(content)
        assert summary.startswith("This sentence")
        assert summary.endswith(".")
        assert summarize("word " * 200 + ".", max_words=10).endswith("...")


# =============================================================
# TEST: Weather
# =============================================================

class TestWeatherNormalizer:
    """NOAA and Open-Meteo snapshots."""

    def test_noaa_full(self):
        """Grid, forecast and alerts fold into one snapshot."""
        raw = {
            "grid": {"properties": {
                "updateTime": "2024-05-06T17:30:00+00:00",
                "temperature": {"values": [{"value": 27.0}]},
                "relativeHumidity": {"values": [{"value": 65}]},
                "windSpeed": {"uom": "wmoUnit:km_h-1", "values": [{"value": 18.0}]},
                "windDirection": {"values": [{"value": 90}]},
                "skyCover": {"values": [{"value": 10}]},
            }},
            "forecast": {"properties": {"periods": [
                {"startTime": "2024-05-06T06:00:00-10:00", "temperature": 85, "temperatureUnit": "F",
                 "shortForecast": "Sunny", "detailedForecast": "Chance of rain 30%.",
                 "windSpeed": "10 to 15 mph", "windDirection": "ENE"},
                {"temperature": 73, "temperatureUnit": "F"},
            ]}},
            "alerts": {"features": [{"properties": {
                "headline": "High Surf Advisory", "severity": "Moderate", "areaDesc": "North Shore",
            }}]},
        }

        [record] = normalize_noaa_weather(raw, Island.OAHU, "noaa_weather", NOW)
        snapshot = record.payload

        assert record.identity_key == "weather:oahu"
        assert snapshot.current.temperature_f == 81
        assert snapshot.current.wind_speed_mph == 11
        assert snapshot.current.wind_direction == "E"
        assert snapshot.current.conditions == "Sunny"
        assert snapshot.today.high_f == 85
        assert snapshot.today.low_f == 73
        assert snapshot.today.precipitation_chance == 30
        assert snapshot.today.wind_direction == "ENE"
        assert snapshot.alerts[0].severity == AlertSeverity.MODERATE
        assert record.timestamp == datetime(2024, 5, 6, 17, 30, tzinfo=timezone.utc)

    def test_noaa_missing_fields_use_defaults(self):
        """An empty grid falls back to default readings per field."""
        raw = {"grid": {"properties": {}}, "forecast": None}
        [record] = normalize_noaa_weather(raw, Island.MAUI, "noaa_weather", NOW)
        current = record.payload.current
        assert current.temperature_f == 77
        assert current.wind_direction == "NE"
        assert len(record.payload.forecast) == 3
        assert record.timestamp == NOW

    def test_noaa_nothing_usable(self):
        """No grid and no forecast is a malformed response."""
        with pytest.raises(NormalizationError):
            normalize_noaa_weather({"grid": None, "forecast": None}, Island.OAHU, "noaa_weather", NOW)

    def test_open_meteo(self):
        """Open-Meteo current + daily series."""
        raw = {
            "current": {
                "time": "2024-05-06T08:00", "temperature_2m": 80.4, "relative_humidity_2m": 60,
                "wind_speed_10m": 12.2, "wind_direction_10m": 200, "weather_code": 61,
                "apparent_temperature": 83.0,
            },
            "daily": {
                "time": ["2024-05-06", "2024-05-07"],
                "temperature_2m_max": [84, None],
                "temperature_2m_min": [72, 71],
                "weather_code": [0, 2],
            },
        }
        [record] = normalize_open_meteo_weather(raw, Island.KAUAI, "open_meteo_weather", NOW)
        snapshot = record.payload
        assert record.identity_key == "weather:kauai"
        assert snapshot.current.temperature_f == 80
        assert snapshot.current.feels_like_f == 83
        assert snapshot.current.wind_direction == "SSW"
        assert [d.high_f for d in snapshot.forecast] == [84, 84]
        assert snapshot.observed_at == NOW

    def test_open_meteo_malformed(self):
        """Missing sections raise."""
        with pytest.raises(NormalizationError):
            normalize_open_meteo_weather({"current": {}}, Island.OAHU, "open_meteo_weather", NOW)

    def test_cardinals(self):
        """Degrees map onto the 16-point compass."""
        assert [degrees_to_cardinal(d) for d in (0, 45, 180, 350)] == ["N", "NE", "S", "N"]


# =============================================================
# TEST: Surf
# =============================================================

class TestSurfNormalizer:
    """Surfline and Open-Meteo marine readings."""

    @pytest.mark.parametrize("low, high, quality", [
        (0, 0.5, WaveQuality.POOR),
        (1, 2, WaveQuality.FAIR),
        (3, 5, WaveQuality.GOOD),
        (6, 10, WaveQuality.EXCELLENT),
    ])
    def test_wave_quality(self, low, high, quality):
        """Quality bands by maximum height."""
        assert assess_wave_quality(low, high) == quality

    def test_no_swell_is_poor(self):
        """Without swell data quality is poor whatever the height."""
        assert assess_wave_quality(4, 6, has_swell=False) == WaveQuality.POOR

    def test_surfline(self):
        """Readings per spot; malformed spots skipped."""
        good = {"data": {"wave": [{
            "timestamp": NOW.timestamp(),
            "surf": {"min": 4, "max": 6},
            "swells": [{"height": 3, "period": 14, "direction": 320}, {"height": 1, "period": 8, "direction": 180}],
        }]}}
        other = SurfSpot("sunset", "Sunset Beach", 21.67, -158.04, Island.OAHU)

        records = normalize_surfline([(PIPELINE, good), (other, {"error": "nope"})], "surfline")

        assert len(records) == 1
        reading = records[0].payload
        assert records[0].identity_key == "surf:pipe"
        assert (reading.wave_min_ft, reading.wave_max_ft) == (4, 6)
        assert reading.period_s == 11
        assert reading.direction_deg == 320
        assert reading.quality == WaveQuality.EXCELLENT

    def test_open_meteo_marine(self):
        """Significant height in metres becomes a 1.0-1.5x face range."""
        raw = {"hourly": {
            "time": ["2024-05-06T16:00Z", "2024-05-06T18:00Z"],
            "wave_height": [0.5, 1.0],
            "wave_period": [9, 11],
            "wave_direction": [300, 310],
        }}
        record = normalize_open_meteo_marine(raw, PIPELINE, "open_meteo_marine", NOW)
        reading = record.payload
        assert record.identity_key == "surf:pipe"
        assert reading.wave_min_ft == 3.3
        assert reading.wave_max_ft == 4.9
        assert reading.period_s == 11
        assert reading.quality == WaveQuality.GOOD

    def test_open_meteo_marine_malformed(self):
        """No hourly block raises."""
        with pytest.raises(NormalizationError):
            normalize_open_meteo_marine({}, PIPELINE, "open_meteo_marine", NOW)

    def test_fallback_surf(self):
        """Fair 2-4 ft for every catalogued spot of the island."""
        records = fallback_surf_records(Island.MAUI, "fallback", NOW)
        assert len(records) == len(spot_catalogue(Island.MAUI))
        assert all(r.payload.quality == WaveQuality.FAIR for r in records)
        assert {(r.payload.wave_min_ft, r.payload.wave_max_ft) for r in records} == {(2.0, 4.0)}


# =============================================================
# TEST: Tides
# =============================================================

class TestTidesNormalizer:
    """NOAA hi/lo predictions."""

    def test_noaa_predictions(self):
        """Local station times, H/L types, unreadable rows skipped."""
        raw = {"predictions": [
            {"t": "2024-05-06 09:12", "v": "1.873", "type": "H"},
            {"t": "2024-05-06 15:40", "v": "-0.1", "type": "L"},
            {"t": "garbage", "v": "1.0", "type": "H"},
        ]}
        records = normalize_noaa_tides(raw, Island.OAHU, "noaa_tides")
        assert len(records) == 2
        assert records[0].payload.type == TideType.HIGH
        assert records[0].payload.time == datetime(2024, 5, 6, 19, 12, tzinfo=timezone.utc)
        assert records[1].payload.height_ft == -0.1

    def test_noaa_error_payload(self):
        """NOAA error bodies raise with their message."""
        with pytest.raises(NormalizationError, match="No data"):
            normalize_noaa_tides({"error": {"message": "No data was found"}}, Island.OAHU, "noaa_tides")

    def test_synthetic_tides(self):
        """Eight alternating events, three hours apart, stable across calls."""
        first = synthetic_tides(Island.OAHU, NOW + timedelta(minutes=17), "fallback")
        second = synthetic_tides(Island.OAHU, NOW + timedelta(minutes=40), "fallback")
        assert len(first) == 8
        assert [r.payload.type for r in first[:2]] == [TideType.HIGH, TideType.LOW]
        assert first[1].payload.time - first[0].payload.time == timedelta(hours=3)
        assert first == second


# =============================================================
# TEST: Events
# =============================================================

class TestEventsNormalizer:
    """Eventbrite and JSON-LD listings."""

    def test_identity_ignores_case_and_zone(self):
        """Same event reported in another zone has the same identity."""
        utc_start = datetime(2024, 5, 10, 5, 0, tzinfo=timezone.utc)
        local_start = utc_start.astimezone(HAWAII_TZ)
        assert event_identity("Luau Night", utc_start, "Royal Hawaiian") == \
            event_identity("luau night ", local_start, "ROYAL HAWAIIAN")

    def test_detect_island(self):
        """Venue keywords pick the island, O'ahu by default."""
        assert detect_island("Maui Arts & Cultural Center", "Kahului") == Island.MAUI
        assert detect_island("Palace Theater", "Hilo") == Island.HAWAII
        assert detect_island("Somewhere", "") == Island.OAHU

    def test_eventbrite(self):
        """Eventbrite fields map onto EventListing."""
        raw = {"events": [
            {
                "id": "42",
                "name": {"text": "Ukulele Jam"},
                "description": {"text": "Bring your uke"},
                "start": {"utc": "2024-05-10T05:00:00Z"},
                "venue": {"name": "Lahaina Civic", "address": {"localized_address_display": "Lahaina, HI"}},
                "category_id": "103",
                "is_free": True,
            },
            {"id": "43", "name": {"text": ""}, "start": {"utc": "2024-05-10T05:00:00Z"}},
        ]}
        [record] = normalize_eventbrite(raw, "eventbrite")
        listing = record.payload
        assert listing.id == "eventbrite-42"
        assert listing.category == EventCategory.MUSIC
        assert listing.venue.island == Island.MAUI
        assert listing.price.free is True

    def test_eventbrite_malformed(self):
        """A non-dict payload raises."""
        with pytest.raises(NormalizationError):
            normalize_eventbrite(["nope"], "eventbrite")

    def test_jsonld_from_html(self):
        """Event objects found in script blocks and @graph; naive times are HST."""
        html = """
        <html><head>
        <script type="application/ld+json">
        {"@context": "https://schema.org", "@graph": [
          {"@type": "Organization", "name": "HTA"},
          {"@type": "MusicEvent", "name": "Slack Key Show", "startDate": "2024-05-10T19:00",
           "location": {"name": "Waikiki Shell", "address": {"addressLocality": "Honolulu"}},
           "offers": [{"price": "25", "priceCurrency": "USD"}], "keywords": "music, slack key"}
        ]}
        </script>
        <script type="application/ld+json">{not json</script>
        </head></html>
        """
        records = normalize_jsonld_events(extract_jsonld_blocks(html), "hta_events", "hta")
        assert len(records) == 1
        listing = records[0].payload
        assert listing.title == "Slack Key Show"
        assert listing.start == datetime(2024, 5, 11, 5, 0, tzinfo=timezone.utc)
        assert listing.price.free is False
        assert listing.price.min == 25.0
        assert "slack key" in listing.tags

    def test_fallback_event_is_next_saturday(self):
        """Placeholder market on O'ahu only, next Saturday 08:00 HST."""
        [record] = fallback_events(None, "fallback", NOW)
        start = record.payload.start.astimezone(HAWAII_TZ)
        assert (start.weekday(), start.hour, start.day) == (5, 8, 11)
        assert fallback_events(Island.MAUI, "fallback", NOW) == []

    def test_next_saturday_skips_today(self):
        """On a Saturday the placeholder moves a week ahead."""
        saturday = datetime(2024, 5, 11, 20, 0, tzinfo=timezone.utc)
        assert next_saturday_morning(saturday).day == 18
