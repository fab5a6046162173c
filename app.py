from __future__ import annotations

import logging
from datetime import datetime

import folium
import streamlit as st
from folium import plugins
from streamlit_autorefresh import st_autorefresh
from streamlit_folium import st_folium

try:  # pragma: no cover - allow running via ``streamlit run app.py``
    from .api_client import UbaProxyClient
    from .config import load_settings
    from .logging_setup import configure_logging
    from .panel import show_panel
    from .presenter import AirQualityController
    from .stations import map_center, stations_to_frame
except ImportError:  # pragma: no cover - fallback for local execution
    from api_client import UbaProxyClient  # type: ignore
    from config import load_settings  # type: ignore
    from logging_setup import configure_logging  # type: ignore
    from panel import show_panel  # type: ignore
    from presenter import AirQualityController  # type: ignore
    from stations import map_center, stations_to_frame  # type: ignore

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level)
_LOGGER = logging.getLogger(__name__)

st.set_page_config(layout="wide", page_title=f"Air Quality {SETTINGS.target_city}", page_icon="AQI")

st.markdown(
    """
    <style>
    .block-container {
        max-width: 1500px;
        margin: auto;
        padding-top: 2rem;
    }
    h1, h2, h3 {
        font-family: 'Segoe UI', sans-serif;
        color: #2c3e50;
    }
    #air-quality-panel {
        background: #ffffff;
        border-radius: 12px;
        box-shadow: 0 18px 36px rgba(26, 47, 96, 0.12);
        padding: 12px 16px;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

AIR_QUALITY_TOGGLE_KEY = "air-quality"
CONTROLLER_KEY = "air_quality_controller"
FETCHED_AT_KEY = "air_quality_fetched_at"
MAP_GENERATION_KEY = "air_quality_map_generation"
REFRESH_COUNTER_KEY = "air_quality_refresh_counter"
REFRESH_MINUTES = 15


@st.cache_resource(show_spinner=False)
def get_client() -> UbaProxyClient:
    return UbaProxyClient(SETTINGS.api_base_url, timeout=SETTINGS.request_timeout)


def _get_controller() -> AirQualityController:
    controller = st.session_state.get(CONTROLLER_KEY)
    if controller is None:
        controller = AirQualityController(
            get_client(),
            city=SETTINGS.target_city,
            max_workers=SETTINGS.max_workers,
            latest_mode=SETTINGS.latest_timestamp,
            tz_name=SETTINGS.timezone,
        )
        with st.spinner("Loading monitoring stations..."):
            controller.init()
        st.session_state[CONTROLLER_KEY] = controller
    return controller


def _build_map(controller: AirQualityController) -> folium.Map:
    fmap = folium.Map(
        location=list(map_center(controller.stations)),
        zoom_start=12,
        tiles="OpenStreetMap",
        control_scale=True,
        scrollWheelZoom=False,
    )
    plugins.Fullscreen().add_to(fmap)
    return fmap


def render_dashboard() -> None:
    st.title(f"Air quality in {SETTINGS.target_city}")
    st.markdown(
        "Latest hourly measurements of the UBA monitoring stations. "
        "Enable the layer and click a station marker for details."
    )

    controller = _get_controller()
    fmap = _build_map(controller)

    if not controller.stations:
        st.info(f"No monitoring stations could be loaded for {SETTINGS.target_city}. Please try again later.")

    show = st.checkbox("Luftqualität", key=AIR_QUALITY_TOGGLE_KEY)
    refresh_counter = st_autorefresh(interval=REFRESH_MINUTES * 60_000, limit=None, key="air_quality_autorefresh")
    refresh_due = refresh_counter != st.session_state.get(REFRESH_COUNTER_KEY)
    st.session_state[REFRESH_COUNTER_KEY] = refresh_counter
    fetched_at = st.session_state.get(FETCHED_AT_KEY)

    if show and (fetched_at is None or refresh_due):
        with st.spinner("Fetching station measurements..."):
            controller.show_stations(fmap)
        fetched_at = datetime.now().strftime("%Y-%m-%d %H:%M")
        st.session_state[FETCHED_AT_KEY] = fetched_at
    elif show:
        controller.draw_markers(fmap)
    elif fetched_at is not None:
        controller.hide_stations()
        _LOGGER.info("Air-quality layer disabled, markers removed")
        st.session_state[FETCHED_AT_KEY] = None
        # A new component key drops the click remembered from the last session.
        st.session_state[MAP_GENERATION_KEY] = st.session_state.get(MAP_GENERATION_KEY, 0) + 1

    if show:
        st.caption(f"Last update: {fetched_at}")
        if not controller.markers:
            st.warning("None of the stations reported measurements for the last hour.")

    map_col, panel_col = st.columns([3, 1])
    with panel_col:
        panel_slot = st.empty()
    with map_col:
        result = st_folium(
            fmap,
            key=f"air-quality-map-{st.session_state.get(MAP_GENERATION_KEY, 0)}",
            use_container_width=True,
            height=640,
            returned_objects=["last_object_clicked_tooltip"],
        )

    clicked = (result or {}).get("last_object_clicked_tooltip")
    reading = controller.handle_marker_click(clicked) if show else None
    if reading is not None:
        show_panel(panel_slot, reading)

    with st.expander("Monitoring stations"):
        st.dataframe(stations_to_frame(controller.stations), hide_index=True, use_container_width=True)


render_dashboard()
