from datetime import date

import pytest
import requests

from api_client import PollutantEntry, UbaProxyClient, parse_pollutant_entries, parse_station_entry
from conftest import FakeResponse, FakeSession, station_row
from time_window import TimeWindow


def test_station_query_uses_operation_parameter(make_client, station_payload):
    client = make_client(stationCoordinates=lambda params: FakeResponse(station_payload))
    assert client.fetch_station_coordinates() == station_payload
    assert client._session.calls == [{"api": "stationCoordinates"}]


def test_air_quality_query_parameters(make_client):
    client = make_client(airQuality=lambda params: FakeResponse({"data": {}}))
    client.fetch_air_quality("DENW134", TimeWindow(date=date(2025, 3, 14), hour=9))
    assert client._session.calls == [
        {
            "api": "airQuality",
            "date_from": "2025-03-14",
            "date_to": "2025-03-14",
            "time_from": "9",
            "time_to": "9",
            "station": "DENW134",
        }
    ]


def test_network_error_becomes_none():
    class BrokenSession(FakeSession):
        def get(self, url, params=None, timeout=None):
            raise requests.ConnectionError("proxy unreachable")

    client = UbaProxyClient(session=BrokenSession({}))
    assert client.fetch_station_coordinates() is None


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse({"error": "boom"}, status_code=502, reason="Bad Gateway"),
        FakeResponse(raw=b"<html>not json</html>"),
        FakeResponse(raw=b""),
        FakeResponse([1, 2, 3]),
    ],
)
def test_bad_responses_become_none(make_client, response):
    client = make_client(stationCoordinates=lambda params: response)
    assert client.fetch_station_coordinates() is None


def test_close_leaves_external_session_open():
    session = FakeSession({})
    UbaProxyClient(session=session).close()
    assert session.closed is False


def test_parse_station_entry_names_positional_fields():
    record = parse_station_entry(station_row("DENW134", "Essen", "7.0096", "51.4541"))
    assert record.station_id == "DENW134"
    assert record.city == "Essen"
    assert record.longitude == pytest.approx(7.0096)
    assert record.latitude == pytest.approx(51.4541)


@pytest.mark.parametrize(
    "entry",
    [
        ["1", "DENW134", "Essen"],
        station_row("DENW134", "Essen", "east", "51.4"),
        station_row("", "Essen", "7.0", "51.4"),
        "DENW134",
    ],
)
def test_parse_station_entry_rejects_malformed_records(entry):
    with pytest.raises(ValueError):
        parse_station_entry(entry)


def test_parse_pollutant_entries_drops_header_fields():
    record = ["x", "y", "z", [1, "10", 1, "0.5"], [5, "20"], ["bad"]]
    assert parse_pollutant_entries(record) == [
        PollutantEntry(pollutant_id="1", concentration="10"),
        PollutantEntry(pollutant_id="5", concentration="20"),
    ]


def test_pollutant_value_parses_numbers_only():
    assert PollutantEntry("1", "12.5").value == 12.5
    assert PollutantEntry("1", "None").value is None
