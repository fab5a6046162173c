from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd

try:
    from .api_client import PollutantEntry, UbaProxyClient, parse_pollutant_entries  # type: ignore[attr-defined]
    from .config import LATEST_BY_CHRONOLOGY, LATEST_BY_INSERTION, USER_TIMEZONE  # type: ignore[attr-defined]
    from .time_window import resolve_time_window  # type: ignore[attr-defined]
except ImportError:
    from api_client import PollutantEntry, UbaProxyClient, parse_pollutant_entries  # type: ignore
    from config import LATEST_BY_CHRONOLOGY, LATEST_BY_INSERTION, USER_TIMEZONE  # type: ignore
    from time_window import resolve_time_window  # type: ignore

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationReading:
    """Air-quality response for one station.

    ``actual_id`` is the key the server used in its answer; it may be formatted
    differently from ``requested_id`` and is only meant for display.
    """

    requested_id: str
    actual_id: str
    readings: Dict[str, Any]


@dataclass(frozen=True)
class LatestReading:
    requested_id: str
    station_id: str
    timestamp: str
    pollutants: Tuple[PollutantEntry, ...]


def fetch_station_reading(
    client: UbaProxyClient,
    station_id: str,
    now: Optional[datetime] = None,
    tz_name: str = USER_TIMEZONE,
) -> Optional[StationReading]:
    window = resolve_time_window(now, tz_name)
    payload = client.fetch_air_quality(station_id, window)
    data = payload.get("data") if payload else None
    if not isinstance(data, dict) or not data:
        _LOGGER.warning("No air quality data for %s (%s %02d:00)", station_id, window.date, window.hour)
        return None

    actual_id = next(iter(data))
    if actual_id != station_id:
        _LOGGER.info("Station id mapping: %s -> %s", station_id, actual_id)
    readings = data[actual_id]
    return StationReading(
        requested_id=station_id,
        actual_id=str(actual_id),
        readings=readings if isinstance(readings, dict) else {},
    )


def select_latest_timestamp(timestamps: Sequence[str], mode: str = LATEST_BY_INSERTION) -> Optional[str]:
    """Pick the latest timestamp key of a reading.

    The server sends timestamps in ascending order, so by default the last key
    is taken as is. ``chronological`` parses and compares them instead; when the
    two disagree a warning is logged.
    """
    if not timestamps:
        return None
    by_insertion = timestamps[-1]
    by_chronology = _chronological_last(timestamps)
    if by_chronology is not None and by_chronology != by_insertion:
        _LOGGER.warning(
            "Timestamps are not in chronological order: last key %s, latest time %s",
            by_insertion,
            by_chronology,
        )
    if mode == LATEST_BY_CHRONOLOGY and by_chronology is not None:
        return by_chronology
    return by_insertion


def _chronological_last(timestamps: Sequence[str]) -> Optional[str]:
    parsed = pd.to_datetime(pd.Series(list(timestamps)), errors="coerce")
    if parsed.isna().any():
        return None
    return timestamps[int(parsed.idxmax())]


def latest_reading(reading: StationReading, mode: str = LATEST_BY_INSERTION) -> Optional[LatestReading]:
    timestamps = list(reading.readings)
    latest = select_latest_timestamp(timestamps, mode)
    if latest is None:
        _LOGGER.warning("No measurements for %s", reading.actual_id)
        return None
    return LatestReading(
        requested_id=reading.requested_id,
        station_id=reading.actual_id,
        timestamp=latest,
        pollutants=tuple(parse_pollutant_entries(reading.readings[latest])),
    )
