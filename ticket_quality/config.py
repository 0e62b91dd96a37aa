from __future__ import annotations

from pathlib import Path

# Paths and filenames
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "ticket_quality" / "data"
METRICS_FILE = DATA_DIR / "metrics.json"

# Metrics (order is display order)
METRIC_KEYS = ("customer_satisfaction", "agent_empathy", "time_to_resolution")
METRIC_LABELS = {
    "customer_satisfaction": "Customer Satisfaction",
    "agent_empathy": "Agent Empathy",
    "time_to_resolution": "Time to Resolution",
}
VALUE_MIN = 0
VALUE_MAX = 100
DEFAULT_VALUE = 50
DEFAULT_LOCKED = False

# Overall score weighting; equal weights give the plain mean
SCORE_WEIGHTS = {key: 1.0 for key in METRIC_KEYS}

# History
HISTORY_CAPACITY = 50

# Persistence
STORAGE_NAMESPACE = "ticket-quality-metrics"

# UI, mode, schema
UI_BASE_TOKEN = "ticket-quality-"
SCHEMA_VERSION = 1
APP_MODE = "dash"
DASHBOARD_TITLE = "Ticket Quality Score"

# Logging
LOG_RATE_LIMIT_SECONDS = 0.1

# Plot palette and styles (Okabe-Ito)
FIGURE_COLORS = {
    "score": "#0072B2",
    "marker": "#D55E00",
    "grid": "#e5e5e5",
}
SCORE_LINE_STYLE = {"color": FIGURE_COLORS["score"], "width": 3}
SCORE_MARKER_STYLE = {
    "color": FIGURE_COLORS["marker"],
    "size": 9,
    "symbol": "circle",
    "line": {"color": "#ffffff", "width": 1},
}
