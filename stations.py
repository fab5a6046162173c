from __future__ import annotations

import logging
from typing import Dict, Mapping, MutableMapping, Tuple

import pandas as pd

try:
    from .api_client import StationRecord, UbaProxyClient, parse_station_entry, station_city  # type: ignore[attr-defined]
    from .config import DEFAULT_MAP_CENTER, TARGET_CITY  # type: ignore[attr-defined]
except ImportError:
    from api_client import StationRecord, UbaProxyClient, parse_station_entry, station_city  # type: ignore
    from config import DEFAULT_MAP_CENTER, TARGET_CITY  # type: ignore

_LOGGER = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "station_id",
    "city",
    "latitude",
    "longitude",
]


def load_station_coordinates(
    client: UbaProxyClient,
    stations: MutableMapping[str, StationRecord],
    city: str = TARGET_CITY,
) -> int:
    """Fill ``stations`` with the monitoring stations of ``city``.

    The mapping is only touched once the whole response has been parsed; any
    malformed response leaves it as it was. Returns the number of stations loaded.
    """
    payload = client.fetch_station_coordinates()
    records = payload.get("data") if payload else None
    if not isinstance(records, list):
        _LOGGER.warning("Unexpected station coordinate response: %r", payload)
        return 0

    matching = [entry for entry in records if station_city(entry) == city]
    if not matching:
        _LOGGER.warning("No monitoring stations found for %s", city)
        return 0

    loaded: Dict[str, StationRecord] = {}
    for entry in matching:
        try:
            record = parse_station_entry(entry)
        except ValueError as exc:
            _LOGGER.warning("Skipping station record: %s", exc)
            continue
        loaded[record.station_id] = record

    stations.update(loaded)
    _LOGGER.info("Loaded %d stations for %s: %s", len(loaded), city, ", ".join(sorted(loaded)))
    return len(loaded)


def stations_to_frame(stations: Mapping[str, StationRecord]) -> pd.DataFrame:
    """Return a dataframe with one row per loaded station, sorted by id."""
    records = [record.__dict__ for record in stations.values()]
    df = pd.DataFrame(records, columns=REQUIRED_COLUMNS)
    if df.empty:
        return df
    df = df.sort_values("station_id").reset_index(drop=True)
    return df


def map_center(stations: Mapping[str, StationRecord]) -> Tuple[float, float]:
    df = stations_to_frame(stations)
    if df.empty:
        return DEFAULT_MAP_CENTER
    return float(df["latitude"].mean()), float(df["longitude"].mean())
