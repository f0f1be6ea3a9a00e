"""Normalizers - Tides (NOAA CO-OPS hi/lo predictions)."""

from datetime import datetime, timedelta
from typing import Any

from data_sources.exceptions import NormalizationError
from data_sources.models import DomainRecord
from data_sources.normalizers.common import parse_hawaii_local, to_float, utc_iso
from data_sources.payloads import Island, TideEvent, TideType


SYNTHETIC_TIDE_COUNT = 8
SYNTHETIC_TIDE_SPACING = timedelta(hours=3)


def tide_identity(island: Island, time: datetime) -> str:
    return f"tide:{island.value}:{utc_iso(time)}"


def _record(event: TideEvent, source_name: str) -> DomainRecord:
    return DomainRecord(
        identity_key=tide_identity(event.island, event.time),
        payload=event,
        source_name=source_name,
        timestamp=event.time,
    )


def normalize_noaa_tides(raw: Any, island: Island, source_name: str) -> list[DomainRecord]:
    """
    {"predictions": [{"t": "2024-05-01 04:12", "v": "1.873", "type": "H"}, ...]}

    Times are local station time. Predictions with an unreadable time or
    height are skipped; a response without a predictions list is malformed.
    """
    predictions = raw.get("predictions") if isinstance(raw, dict) else None
    if not isinstance(predictions, list):
        message = "Missing 'predictions'"
        if isinstance(raw, dict) and isinstance(raw.get("error"), dict):
            message = raw["error"].get("message", message)
        raise NormalizationError(message=message, source_name=source_name)

    records = []
    for prediction in predictions:
        when = parse_hawaii_local(prediction.get("t", ""))
        height = to_float(prediction.get("v"))
        if when is None or height is None:
            continue
        tide_type = TideType.HIGH if str(prediction.get("type", "")).upper() == "H" else TideType.LOW
        records.append(_record(TideEvent(island=island, time=when, type=tide_type, height_ft=height), source_name))
    return records


def synthetic_tides(island: Island, now: datetime, source_name: str) -> list[DomainRecord]:
    """
    Alternating high/low placeholders every three hours from now.

    Heights vary with the index only, so repeated calls agree.
    """
    start = now.replace(minute=0, second=0, microsecond=0)
    records = []
    for i in range(SYNTHETIC_TIDE_COUNT):
        high = i % 2 == 0
        height = 2.1 + 0.1 * (i % 5) if high else 0.3 + 0.1 * (i % 4)
        event = TideEvent(
            island=island,
            time=start + i * SYNTHETIC_TIDE_SPACING,
            type=TideType.HIGH if high else TideType.LOW,
            height_ft=round(height, 2),
        )
        records.append(_record(event, source_name))
    return records
