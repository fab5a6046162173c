from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from api_client import UbaProxyClient


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, reason: str = "OK", raw: Optional[bytes] = None) -> None:
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self.content = raw if raw is not None else json.dumps(payload).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content)


class FakeSession:
    """Stands in for ``requests.Session``; routes by the ``api`` query parameter."""

    def __init__(self, routes: Dict[str, Callable[[Dict[str, str]], FakeResponse]]) -> None:
        self.routes = routes
        self.calls: List[Dict[str, str]] = []
        self.closed = False

    def get(self, url: str, params: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> FakeResponse:
        params = dict(params or {})
        self.calls.append(params)
        return self.routes[params["api"]](params)

    def close(self) -> None:
        self.closed = True


def station_row(code: str, city: str, lon: str, lat: str) -> List[Any]:
    return ["1", code, f"{city} {code}", city, "2000-01-01", None, "urban", lon, lat]


STATION_PAYLOAD = {
    "data": [
        station_row("DENW134", "Essen", "7.0096", "51.4541"),
        station_row("DENW043", "Essen", "6.9658", "51.4931"),
        station_row("DEBE010", "Berlin", "13.3493", "52.5430"),
        station_row("DENW038", "Dortmund", "7.4699", "51.5120"),
    ]
}


@pytest.fixture
def station_payload() -> Dict[str, Any]:
    return STATION_PAYLOAD


@pytest.fixture
def make_client() -> Callable[..., UbaProxyClient]:
    def _factory(**routes: Callable[[Dict[str, str]], FakeResponse]) -> UbaProxyClient:
        return UbaProxyClient("https://proxy.example/ubaProxy?", session=FakeSession(routes))  # type: ignore[arg-type]

    return _factory
