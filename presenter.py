from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Dict, Optional

import folium

try:
    from .api_client import StationRecord, UbaProxyClient  # type: ignore[attr-defined]
    from .config import LATEST_BY_INSERTION, MAX_FETCH_WORKERS, TARGET_CITY, USER_TIMEZONE  # type: ignore[attr-defined]
    from .panel import pollutant_lines_html  # type: ignore[attr-defined]
    from .readings import LatestReading, StationReading, fetch_station_reading, latest_reading  # type: ignore[attr-defined]
    from .stations import load_station_coordinates  # type: ignore[attr-defined]
except ImportError:
    from api_client import StationRecord, UbaProxyClient  # type: ignore
    from config import LATEST_BY_INSERTION, MAX_FETCH_WORKERS, TARGET_CITY, USER_TIMEZONE  # type: ignore
    from panel import pollutant_lines_html  # type: ignore
    from readings import LatestReading, StationReading, fetch_station_reading, latest_reading  # type: ignore
    from stations import load_station_coordinates  # type: ignore

_LOGGER = logging.getLogger(__name__)


def build_popup_html(reading: LatestReading) -> str:
    return (
        f"<h3>Messstation {escape(reading.station_id)}</h3>"
        f"<p><b>Messzeit:</b> {escape(reading.timestamp)}</p>"
        f"{pollutant_lines_html(reading.pollutants)}"
    )


@dataclass
class MarkerEntry:
    marker: folium.Marker
    requested_id: str
    reading: LatestReading


class FetchSession:
    """Cancellation token for one "show stations" run."""

    def __init__(self, session_id: int) -> None:
        self.session_id = session_id
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class AirQualityController:
    """Owns the station coordinates and the marker registry for one map session."""

    def __init__(
        self,
        client: UbaProxyClient,
        *,
        city: str = TARGET_CITY,
        max_workers: int = MAX_FETCH_WORKERS,
        latest_mode: str = LATEST_BY_INSERTION,
        tz_name: str = USER_TIMEZONE,
    ) -> None:
        self.client = client
        self.city = city
        self.max_workers = max_workers
        self.latest_mode = latest_mode
        self.tz_name = tz_name
        self.stations: Dict[str, StationRecord] = {}
        self.markers: Dict[str, MarkerEntry] = {}
        self._lock = threading.Lock()
        self._session: Optional[FetchSession] = None
        self._session_ids = itertools.count(1)

    # --- lifecycle ---------------------------------------------------------

    def init(self) -> int:
        return load_station_coordinates(self.client, self.stations, self.city)

    def reset(self) -> None:
        self.hide_stations()
        with self._lock:
            self.stations.clear()

    # --- toggle ------------------------------------------------------------

    def show_stations(self, map_obj: folium.Map, now: Optional[datetime] = None) -> FetchSession:
        """Fetch the latest reading of every station and add its marker to ``map_obj``.

        Results are added as they complete, in no particular order. If the
        session is cancelled meanwhile, pending fetches are dropped and late
        results are discarded. Markers of the previous run are removed first.
        """
        self.hide_stations()
        session = self._start_session()
        station_ids = list(self.stations)
        if not station_ids:
            _LOGGER.warning("No stations loaded for %s, nothing to show", self.city)
            return session

        workers = min(self.max_workers, len(station_ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="airquality") as executor:
            futures = {
                executor.submit(fetch_station_reading, self.client, station_id, now, self.tz_name): station_id
                for station_id in station_ids
            }
            for future in as_completed(futures):
                if session.cancelled:
                    for pending in futures:
                        pending.cancel()
                    break
                self._present(map_obj, session, futures[future], future.result())

        _LOGGER.info("Session %d: %d markers on the map", session.session_id, len(self.markers))
        return session

    def hide_stations(self) -> None:
        """Cancel the running session and take every tracked marker off its map."""
        with self._lock:
            if self._session is not None:
                self._session.cancel()
                self._session = None
            for entry in self.markers.values():
                _remove_marker(entry.marker)
            removed = len(self.markers)
            self.markers.clear()
        _LOGGER.info("Removed %d markers", removed)

    def draw_markers(self, map_obj: folium.Map) -> int:
        """Add the tracked markers to a freshly built ``map_obj``."""
        with self._lock:
            entries = list(self.markers.values())
            for entry in entries:
                _remove_marker(entry.marker)
                entry.marker.add_to(map_obj)
        return len(entries)

    def handle_marker_click(self, key: Optional[str]) -> Optional[LatestReading]:
        """Resolve a clicked marker (by its station id tooltip) to its reading."""
        if not key:
            return None
        with self._lock:
            entry = self.markers.get(key)
        if entry is None:
            _LOGGER.debug("Click on unknown marker %r", key)
            return None
        return entry.reading

    # --- internals ---------------------------------------------------------

    def _start_session(self) -> FetchSession:
        with self._lock:
            if self._session is not None:
                self._session.cancel()
            self._session = FetchSession(next(self._session_ids))
            return self._session

    def _present(
        self,
        map_obj: folium.Map,
        session: FetchSession,
        requested_id: str,
        result: Optional[StationReading],
    ) -> None:
        if result is None:
            _LOGGER.warning("No air quality data for %s", requested_id)
            return
        reading = latest_reading(result, self.latest_mode)
        if reading is None:
            return

        station = self.stations.get(requested_id)
        if station is None:
            _LOGGER.warning("No coordinates stored for %s", requested_id)
            return

        marker = folium.Marker(
            location=[station.latitude, station.longitude],
            popup=folium.Popup(build_popup_html(reading), max_width=280),
            tooltip=reading.station_id,
        )
        with self._lock:
            if session.cancelled or session is not self._session:
                _LOGGER.debug("Discarding result for %s from cancelled session %d", requested_id, session.session_id)
                return
            previous = self.markers.get(reading.station_id)
            if previous is not None:
                _remove_marker(previous.marker)
            marker.add_to(map_obj)
            self.markers[reading.station_id] = MarkerEntry(marker, requested_id, reading)
        _LOGGER.debug("Marker for %s placed at %s/%s", reading.station_id, station.latitude, station.longitude)


def _remove_marker(marker: folium.Marker) -> None:
    # folium has no public removal API; children are keyed by element name.
    parent = marker._parent
    if parent is not None:
        parent._children.pop(marker.get_name(), None)
    marker._parent = None
