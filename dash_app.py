"""Dash dashboard for the ticket quality score."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

import dash
from dash import Input, Output, State, dcc, html

from ticket_quality import config
from ticket_quality.chart import build_score_figure, tooltip_lines
from ticket_quality.dash_bridge import (
    LABEL_PREFIX,
    LOCK_PREFIX,
    SLIDER_PREFIX,
    apply_event,
    overall_score_text,
    slider_panel_view,
)
from ticket_quality.history import HistorySample
from ticket_quality.logger import base_log_record, log_with_throttle, write_log_record

_KEYS = config.METRIC_KEYS
_CHART_UIREVISION = f"{config.UI_BASE_TOKEN}chart"

_SLIDER_TITLES = {
    "customer_satisfaction": "How satisfied the customer was with the outcome (0-100).",
    "agent_empathy": "How well the agent acknowledged the customer's situation (0-100).",
    "time_to_resolution": "How quickly the ticket was resolved; higher is faster (0-100).",
}

_TOOLTIP_BASE_STYLE: Dict[str, Any] = {
    "fontSize": "0.9rem",
    "backgroundColor": "#f7f7f7",
    "border": "1px solid #dddddd",
    "borderRadius": "8px",
    "padding": "12px",
    "marginTop": "8px",
    "minHeight": "96px",
}

_GLOBAL_STYLES = """
<style>
.container {
    max-width: 960px;
    margin: 0 auto;
    padding: 0 16px 32px;
}
.metric-grid {
    display: grid;
    grid-template-columns: repeat(auto-fit, minmax(260px, 1fr));
    gap: 16px;
}
.metric-cell {
    border: 1px solid #dddddd;
    border-radius: 12px;
    padding: 16px;
}
.lock-button {
    min-width: 72px;
    min-height: 44px;
    border: 1px solid #004a7c;
    border-radius: 8px;
    background-color: #ffffff;
    color: #004a7c;
    font-weight: 600;
}
.lock-button.locked {
    background-color: #0072b2;
    color: #ffffff;
}
button:focus-visible,
.rc-slider-handle:focus-visible {
    outline: 3px solid #ffbf47;
    outline-offset: 2px;
}
#overallScore {
    font-size: 2rem;
    font-weight: 700;
    margin: 24px 0 8px;
}
</style>
"""


def _tooltip_style(visible: bool) -> Dict[str, Any]:
    style = dict(_TOOLTIP_BASE_STYLE)
    style["visibility"] = "visible" if visible else "hidden"
    return style


def _get_session_id(session_data: Optional[Dict[str, Any]]) -> str:
    if isinstance(session_data, dict):
        raw = session_data.get("session_id")
        if isinstance(raw, str) and raw:
            return raw
    return "unknown"


def _metric_cell(key: str) -> html.Div:
    label_id = f"{LABEL_PREFIX}{key}"
    return html.Div(
        [
            html.Div(
                [
                    html.Label(config.METRIC_LABELS[key], htmlFor=f"{SLIDER_PREFIX}{key}", style={"fontWeight": 600}),
                    html.Span(str(config.DEFAULT_VALUE), id=label_id, style={"marginLeft": "auto", "fontWeight": 600}),
                ],
                style={"display": "flex", "alignItems": "center"},
            ),
            html.Div(
                [
                    html.Div(
                        dcc.Slider(
                            id=f"{SLIDER_PREFIX}{key}",
                            min=config.VALUE_MIN,
                            max=config.VALUE_MAX,
                            step=1,
                            value=config.DEFAULT_VALUE,
                            marks={0: "0", 50: "50", 100: "100"},
                            updatemode="drag",
                        ),
                        style={"flex": "1"},
                        title=_SLIDER_TITLES[key],
                    ),
                    html.Button(
                        "Lock",
                        id=f"{LOCK_PREFIX}{key}",
                        n_clicks=0,
                        type="button",
                        className="lock-button",
                        title=f"Lock or unlock {config.METRIC_LABELS[key]}.",
                        **{"data-key": key, "aria-label": f"Toggle lock for {config.METRIC_LABELS[key]}"},
                    ),
                ],
                style={"display": "flex", "alignItems": "center", "marginTop": "8px"},
            ),
        ],
        className="metric-cell",
        **{"data-key": key},
    )


def _serve_layout() -> html.Div:
    global_styles = dcc.Markdown(_GLOBAL_STYLES, dangerously_allow_html=True)
    return html.Div(
        [
            dcc.Store(id="store-metrics", storage_type="local"),
            dcc.Store(id="store-history", data=[]),
            dcc.Store(
                id="store-session",
                storage_type="session",
                data={"session_id": uuid.uuid4().hex},
            ),
            global_styles,
            html.H1(config.DASHBOARD_TITLE),
            html.Div([_metric_cell(key) for key in _KEYS], className="metric-grid"),
            html.Div(f"Overall score: {config.DEFAULT_VALUE}", id="overallScore", **{"aria-live": "polite"}),
            dcc.Graph(
                id="score-chart",
                figure=build_score_figure([], uirevision=_CHART_UIREVISION),
                config={"displaylogo": False},
                clear_on_unhover=True,
            ),
            html.Div(id="tooltip", style=_tooltip_style(False), role="tooltip"),
        ],
        className="container",
    )


app = dash.Dash(__name__, title=config.DASHBOARD_TITLE)
server = app.server
app.layout = _serve_layout


def _log_event(session_data: Optional[Dict[str, Any]], event: Dict[str, Any]) -> None:
    session_id = _get_session_id(session_data)
    fields = dict(event)
    record = base_log_record(
        session_id,
        event=fields.pop("event"),
        metric_key=fields.pop("metric_key", None),
        old_value=fields.pop("old_value", None),
        new_value=fields.pop("new_value", None),
        source=fields.pop("source", "system"),
        overall_score=fields.pop("overall_score", None),
        extras=fields,
    )
    if record["event"] == "slider_change":
        log_with_throttle(session_id, record)
    else:
        write_log_record(session_id, record)


@app.callback(
    [
        Output("store-metrics", "data"),
        Output("store-history", "data"),
        *[Output(f"{SLIDER_PREFIX}{key}", "value") for key in _KEYS],
        *[Output(f"{SLIDER_PREFIX}{key}", "disabled") for key in _KEYS],
        *[Output(f"{LOCK_PREFIX}{key}", "className") for key in _KEYS],
        *[Output(f"{LOCK_PREFIX}{key}", "children") for key in _KEYS],
        *[Output(f"{LABEL_PREFIX}{key}", "children") for key in _KEYS],
        Output("overallScore", "children"),
        Output("score-chart", "figure"),
    ],
    [
        *[Input(f"{SLIDER_PREFIX}{key}", "value") for key in _KEYS],
        *[Input(f"{LOCK_PREFIX}{key}", "n_clicks") for key in _KEYS],
        Input("store-metrics", "modified_timestamp"),
    ],
    [
        State("store-metrics", "data"),
        State("store-history", "data"),
        State("store-session", "data"),
    ],
)
def _handle_dashboard_event(*args):
    count = len(_KEYS)
    slider_values = dict(zip(_KEYS, args[:count]))
    metrics_data, history_data, session_data = args[2 * count + 1:]

    ctx = dash.callback_context
    trigger_id = ctx.triggered[0]["prop_id"].split(".")[0] if ctx.triggered else ""
    update = apply_event(trigger_id, slider_values, metrics_data, history_data)
    if update.event:
        _log_event(session_data, update.event)

    view = slider_panel_view(update.snapshot)
    return (
        update.metrics_data if update.metrics_data is not None else dash.no_update,
        update.history_data if update.history_data is not None else dash.no_update,
        *[view[key]["value"] for key in _KEYS],
        *[view[key]["disabled"] for key in _KEYS],
        *[view[key]["lock_class"] for key in _KEYS],
        *[view[key]["lock_text"] for key in _KEYS],
        *[view[key]["label"] for key in _KEYS],
        overall_score_text(update.snapshot),
        build_score_figure(update.samples, uirevision=_CHART_UIREVISION),
    )


@app.callback(
    [
        Output("tooltip", "children"),
        Output("tooltip", "style"),
    ],
    Input("score-chart", "hoverData"),
    State("store-history", "data"),
)
def _render_tooltip(hover_data, history_data):
    points = hover_data.get("points") if isinstance(hover_data, dict) else None
    if not points or not isinstance(history_data, list):
        return [], _tooltip_style(False)
    index = points[0].get("pointIndex")
    if not isinstance(index, int) or not 0 <= index < len(history_data):
        return [], _tooltip_style(False)
    try:
        sample = HistorySample.from_dict(history_data[index])
    except (KeyError, TypeError, ValueError):
        return [], _tooltip_style(False)
    lines: List[Any] = [html.Div(line) for line in tooltip_lines(sample)]
    return lines, _tooltip_style(True)


if __name__ == "__main__":
    app.run(debug=True)
