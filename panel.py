from __future__ import annotations

from html import escape
from typing import Any, Iterable

import pandas as pd

try:
    from .api_client import PollutantEntry  # type: ignore[attr-defined]
    from .config import CONCENTRATION_UNIT, POLLUTANTS  # type: ignore[attr-defined]
    from .readings import LatestReading  # type: ignore[attr-defined]
except ImportError:
    from api_client import PollutantEntry  # type: ignore
    from config import CONCENTRATION_UNIT, POLLUTANTS  # type: ignore
    from readings import LatestReading  # type: ignore

PANEL_ELEMENT_ID = "air-quality-panel"


def format_pollutant_line(entry: PollutantEntry) -> str:
    return f"ID {entry.pollutant_id}: {entry.concentration} {CONCENTRATION_UNIT}"


def pollutant_lines_html(pollutants: Iterable[PollutantEntry]) -> str:
    return "".join(f"<p>{escape(format_pollutant_line(entry))}</p>" for entry in pollutants)


def render_panel_html(station_id: str, timestamp: str, pollutants: Iterable[PollutantEntry]) -> str:
    return (
        f"<div id='{PANEL_ELEMENT_ID}' style='display:block;'>"
        f"<h2>Messstation {escape(station_id)}</h2>"
        f"<p><b>Messzeit:</b> {escape(timestamp)}</p>"
        f"{pollutant_lines_html(pollutants)}"
        "</div>"
    )


def pollutants_to_frame(pollutants: Iterable[PollutantEntry]) -> pd.DataFrame:
    rows = [
        {
            "Pollutant ID": entry.pollutant_id,
            "Component": POLLUTANTS.get(entry.pollutant_id, "--"),
            "Value": entry.value,
            "Unit": CONCENTRATION_UNIT,
        }
        for entry in pollutants
    ]
    return pd.DataFrame(rows, columns=["Pollutant ID", "Component", "Value", "Unit"])


def show_panel(placeholder: Any, reading: LatestReading) -> None:
    """Replace the contents of the panel placeholder with ``reading``.

    ``placeholder`` is a Streamlit ``st.empty()`` slot; calling ``container()``
    on it discards whatever the panel showed before.
    """
    box = placeholder.container()
    box.markdown(
        render_panel_html(reading.station_id, reading.timestamp, reading.pollutants),
        unsafe_allow_html=True,
    )
    frame = pollutants_to_frame(reading.pollutants)
    if not frame.empty:
        box.dataframe(frame, hide_index=True, use_container_width=True)
