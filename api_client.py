from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

try:
    from .config import API_DATA_BASE_URL, REQUEST_TIMEOUT_SECONDS  # type: ignore[attr-defined]
    from .time_window import TimeWindow  # type: ignore[attr-defined]
except ImportError:
    from config import API_DATA_BASE_URL, REQUEST_TIMEOUT_SECONDS  # type: ignore
    from time_window import TimeWindow  # type: ignore

_LOGGER = logging.getLogger(__name__)

# Positions inside a station record of the stationCoordinates response.
STATION_CODE_INDEX = 1
STATION_CITY_INDEX = 3
STATION_LONGITUDE_INDEX = 7
STATION_LATITUDE_INDEX = 8

# Leading fields of a per-timestamp reading record that carry no pollutant data.
READING_HEADER_FIELDS = 3


@dataclass(frozen=True)
class StationRecord:
    station_id: str
    city: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class PollutantEntry:
    pollutant_id: str
    concentration: str

    @property
    def value(self) -> Optional[float]:
        try:
            return float(self.concentration)
        except (TypeError, ValueError):
            return None


class UbaProxyClient:
    """Thin wrapper around the UBA proxy with timeout and error handling."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or API_DATA_BASE_URL).rstrip("?")
        self.timeout = timeout
        self._external_session = session
        self._session = session or requests.Session()

    def fetch_station_coordinates(self) -> Optional[Dict[str, Any]]:
        return self._get_json({"api": "stationCoordinates"})

    def fetch_air_quality(self, station_id: str, window: TimeWindow) -> Optional[Dict[str, Any]]:
        params: Dict[str, str] = {"api": "airQuality"}
        params.update(window.as_query_params())
        params["station"] = station_id
        return self._get_json(params)

    def _get_json(self, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """Issue one GET and return the decoded object, or None on any failure."""
        _LOGGER.debug("Requesting %s with %s", self.base_url, params)
        try:
            response = self._session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            _LOGGER.error("Request to %s (api=%s) failed: %s", self.base_url, params.get("api"), exc)
            return None

        if response.status_code != 200:
            _LOGGER.error(
                "Proxy answered HTTP %s for api=%s: %s",
                response.status_code,
                params.get("api"),
                response.reason,
            )
            return None

        try:
            payload = response.json() if response.content else None
        except ValueError as exc:
            _LOGGER.error("JSON decode error for api=%s: %s", params.get("api"), exc)
            return None

        if not isinstance(payload, dict):
            _LOGGER.warning("Unexpected payload structure for api=%s: %r", params.get("api"), payload)
            return None
        return payload

    def close(self) -> None:
        if not self._external_session:
            self._session.close()


# --- Boundary parsing -----------------------------------------------------

def parse_station_entry(entry: Any) -> StationRecord:
    """Turn one positional station record into a :class:`StationRecord`.

    Raises ``ValueError`` when the record is too short or the coordinates are not numeric.
    """
    if not isinstance(entry, (list, tuple)) or len(entry) <= STATION_LATITUDE_INDEX:
        raise ValueError(f"Station record too short: {entry!r}")
    station_id = _safe_str(entry[STATION_CODE_INDEX])
    if not station_id:
        raise ValueError(f"Station record without code: {entry!r}")
    try:
        longitude = float(entry[STATION_LONGITUDE_INDEX])
        latitude = float(entry[STATION_LATITUDE_INDEX])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid coordinates for station {station_id}: {exc}") from exc
    return StationRecord(
        station_id=station_id,
        city=_safe_str(entry[STATION_CITY_INDEX]) or "",
        latitude=latitude,
        longitude=longitude,
    )


def station_city(entry: Any) -> Optional[str]:
    if isinstance(entry, (list, tuple)) and len(entry) > STATION_CITY_INDEX:
        return entry[STATION_CITY_INDEX]
    return None


def parse_pollutant_entries(record: Sequence[Any]) -> List[PollutantEntry]:
    """Drop the record header and keep the (pollutant id, concentration) pairs."""
    entries: List[PollutantEntry] = []
    for item in _pollutant_items(record):
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            _LOGGER.debug("Skipping malformed pollutant entry %r", item)
            continue
        entries.append(PollutantEntry(pollutant_id=str(item[0]), concentration=str(item[1])))
    return entries


def _pollutant_items(record: Sequence[Any]) -> Iterable[Any]:
    if not isinstance(record, (list, tuple)):
        return []
    return record[READING_HEADER_FIELDS:]


def _safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None
