from __future__ import annotations

from typing import List, Sequence

import plotly.graph_objects as go

from . import config
from .history import HistorySample


def hover_template() -> str:
    lines = ["%{x}", "Overall score: %{y}"]
    for idx, key in enumerate(config.METRIC_KEYS):
        lines.append(f"{config.METRIC_LABELS[key]}: %{{customdata[{idx}]}}")
    return "<br>".join(lines) + "<extra></extra>"


def tooltip_lines(sample: HistorySample) -> List[str]:
    lines = [sample.timestamp, f"Overall score: {sample.overall_score}"]
    for key in config.METRIC_KEYS:
        value = sample.metric_snapshot.get(key)
        lines.append(f"{config.METRIC_LABELS[key]}: {'n/a' if value is None else value}")
    return lines


def sample_customdata(samples: Sequence[HistorySample]) -> List[List[int]]:
    return [[sample.metric_snapshot.get(key) for key in config.METRIC_KEYS] for sample in samples]


def score_trace(samples: Sequence[HistorySample]) -> go.Scatter:
    return go.Scatter(
        x=[sample.timestamp for sample in samples],
        y=[sample.overall_score for sample in samples],
        customdata=sample_customdata(samples),
        mode="lines+markers",
        name="Overall score",
        line=dict(config.SCORE_LINE_STYLE),
        marker=dict(config.SCORE_MARKER_STYLE),
        hovertemplate=hover_template(),
        showlegend=False,
    )


def build_score_figure(samples: Sequence[HistorySample], *, uirevision: str = config.UI_BASE_TOKEN) -> go.Figure:
    fig = go.Figure(data=[score_trace(samples)])
    fig.update_layout(
        height=360,
        margin=dict(l=36, r=16, t=32, b=32),
        xaxis=dict(
            title="Time",
            showgrid=True,
            gridcolor=config.FIGURE_COLORS["grid"],
        ),
        yaxis=dict(
            title="Overall score",
            range=[config.VALUE_MIN, config.VALUE_MAX],
            showgrid=True,
            gridcolor=config.FIGURE_COLORS["grid"],
        ),
        hovermode="closest",
        showlegend=False,
        uirevision=uirevision,
    )
    return fig
