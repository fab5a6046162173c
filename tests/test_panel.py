from unittest import mock

from api_client import PollutantEntry
from panel import format_pollutant_line, pollutants_to_frame, render_panel_html, show_panel
from readings import LatestReading

POLLUTANTS = (PollutantEntry("1", "10"), PollutantEntry("5", "20"))


def test_panel_markup():
    html = render_panel_html("DENW134", "2025-03-14 09:00:00", POLLUTANTS)
    assert html.startswith("<div id='air-quality-panel' style='display:block;'>")
    assert "<h2>Messstation DENW134</h2>" in html
    assert "<p><b>Messzeit:</b> 2025-03-14 09:00:00</p>" in html
    assert "<p>ID 1: 10 µg/m³</p><p>ID 5: 20 µg/m³</p>" in html


def test_panel_escapes_server_values():
    html = render_panel_html("<b>x</b>", "t", ())
    assert "&lt;b&gt;x&lt;/b&gt;" in html


def test_pollutant_line():
    assert format_pollutant_line(PollutantEntry("9", "4.2")) == "ID 9: 4.2 µg/m³"


def test_pollutant_frame_names_known_components():
    frame = pollutants_to_frame(POLLUTANTS + (PollutantEntry("99", "n/a"),))
    assert list(frame["Component"]) == ["PM10", "NO2", "--"]
    assert frame["Value"].iloc[0] == 10.0
    assert frame["Value"].isna().iloc[2]


def test_show_panel_replaces_placeholder_contents():
    placeholder = mock.MagicMock()
    reading = LatestReading("DENW134", "DENW134", "2025-03-14 09:00:00", POLLUTANTS)

    show_panel(placeholder, reading)

    box = placeholder.container.return_value
    markup = box.markdown.call_args.args[0]
    assert "Messstation DENW134" in markup
    assert box.markdown.call_args.kwargs == {"unsafe_allow_html": True}
    assert box.dataframe.called
