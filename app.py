import uuid

import streamlit as st
import streamlit_shadcn_ui as ui

from ticket_quality import config
from ticket_quality.chart import build_score_figure
from ticket_quality.controller import build_dashboard
from ticket_quality.logger import log_persistence_notice
from ticket_quality.storage import JsonFileStorage
from ticket_quality.ui_components import metric_controls

st.set_page_config(page_title=config.DASHBOARD_TITLE, layout="wide")

st.title(config.DASHBOARD_TITLE)
st.caption("Adjust each metric; locked metrics keep their value but still count toward the overall score.")


def _remember_notice(message):
    st.session_state["persistence_notice"] = message
    log_persistence_notice(st.session_state.get("session_id"), message)


# One controller per browser session; values and locks persist in a local file
if "controller" not in st.session_state:
    st.session_state["session_id"] = uuid.uuid4().hex
    st.session_state["persistence_notice"] = None
    controller = build_dashboard(JsonFileStorage(config.METRICS_FILE))
    controller.subscribe_notice(_remember_notice)
    st.session_state["controller"] = controller

controller = st.session_state["controller"]

left_col, right_col = st.columns([1, 2], gap="large")

with left_col:
    st.header("Metrics")
    metric_controls(controller)

with right_col:
    snapshot = controller.snapshot()
    ui.metric_card(
        title="Overall score",
        content=str(snapshot.overall_score),
        description="Weighted mean of the three metrics",
        key="overall_score",
    )
    st.header("Score history")
    st.caption("Hover a point to see the metric values behind it.")
    st.plotly_chart(
        build_score_figure(controller.samples()),
        use_container_width=True,
        config={"displaylogo": False},
    )

if st.session_state.get("persistence_notice"):
    st.warning(st.session_state["persistence_notice"])
