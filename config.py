from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict

API_DATA_BASE_URL = "https://datenplattform-essen.netlify.app/.netlify/functions/ubaProxy"
USER_TIMEZONE = "Europe/Berlin"
TARGET_CITY = "Essen"

REQUEST_TIMEOUT_SECONDS = 10.0
MAX_FETCH_WORKERS = 8
CONCENTRATION_UNIT = "µg/m³"

LATEST_BY_INSERTION = "insertion"
LATEST_BY_CHRONOLOGY = "chronological"

# Component ids used by the UBA air data service.
POLLUTANTS: Dict[str, str] = {
    "1": "PM10",
    "2": "CO",
    "3": "O3",
    "4": "SO2",
    "5": "NO2",
    "6": "PM10 (Pb)",
    "7": "PM10 (BaP)",
    "8": "Benzene",
    "9": "PM2.5",
    "10": "PM10 (As)",
    "11": "PM10 (Cd)",
    "12": "PM10 (Ni)",
}

# Default map centre when no station coordinates are loaded (Essen city centre).
DEFAULT_MAP_CENTER = (51.4556, 7.0116)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class AirQualitySettings:
    api_base_url: str
    target_city: str
    timezone: str
    request_timeout: float
    max_workers: int
    log_level: str
    # "insertion" keeps the last key the server sent, "chronological" sorts.
    latest_timestamp: str


def load_settings() -> AirQualitySettings:
    """Load settings from environment variables, falling back to module defaults."""
    latest = _env_str("AIRQUALITY_LATEST_TIMESTAMP", LATEST_BY_INSERTION).lower()
    if latest not in (LATEST_BY_INSERTION, LATEST_BY_CHRONOLOGY):
        latest = LATEST_BY_INSERTION

    return AirQualitySettings(
        api_base_url=_env_str("AIRQUALITY_API_BASE_URL", API_DATA_BASE_URL),
        target_city=_env_str("AIRQUALITY_TARGET_CITY", TARGET_CITY),
        timezone=_env_str("AIRQUALITY_TIMEZONE", USER_TIMEZONE),
        request_timeout=_env_float("AIRQUALITY_REQUEST_TIMEOUT", REQUEST_TIMEOUT_SECONDS),
        max_workers=max(1, _env_int("AIRQUALITY_MAX_WORKERS", MAX_FETCH_WORKERS)),
        log_level=_env_str("AIRQUALITY_LOG_LEVEL", "INFO").upper(),
        latest_timestamp=latest,
    )
