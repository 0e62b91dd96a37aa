"""Per-callback bridge between Dash component state and the metric engine.

Dash callbacks are stateless on the server: the persisted metric state lives in
a browser ``localStorage`` store and the score history in a memory store. Each
callback rebuilds the engine from those payloads, applies one UI event through
the controller and hands back the payloads to write and the snapshot to render.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from . import config
from .controller import build_dashboard
from .history import HistorySample, ScoreHistory
from .metric_store import StoreSnapshot
from .storage import MemoryStorage

SLIDER_PREFIX = "slider-"
LOCK_PREFIX = "lock-"
LABEL_PREFIX = "lab-"


@dataclass
class DashboardUpdate:
    snapshot: StoreSnapshot
    samples: Tuple[HistorySample, ...]
    # None means the corresponding dcc.Store is left untouched
    metrics_data: Optional[Dict[str, Any]] = None
    history_data: Optional[List[Dict[str, Any]]] = None
    event: Optional[Dict[str, Any]] = None


def parse_trigger(trigger_id: Any) -> Tuple[str, Optional[str]]:
    if isinstance(trigger_id, str):
        for prefix, kind in ((SLIDER_PREFIX, "slider"), (LOCK_PREFIX, "lock")):
            if trigger_id.startswith(prefix):
                key = trigger_id[len(prefix):]
                if key in config.METRIC_KEYS:
                    return kind, key
    return "render", None


def apply_event(
    trigger_id: Any,
    slider_values: Mapping[str, Any],
    metrics_data: Optional[Dict[str, Any]],
    history_data: Optional[List[Dict[str, Any]]],
    *,
    capacity: int = config.HISTORY_CAPACITY,
    clock: Optional[Callable[[], str]] = None,
) -> DashboardUpdate:
    storage = MemoryStorage(metrics_data) if metrics_data is not None else MemoryStorage()
    history = ScoreHistory.from_records(history_data, capacity)
    controller = build_dashboard(storage, history=history, clock=clock)

    kind, key = parse_trigger(trigger_id)
    event = None
    if kind == "slider":
        raw_value = slider_values.get(key)
        old_value = controller.store.value(key)
        # Slider echoing a value the store already holds; nothing moved.
        if raw_value != old_value:
            accepted = controller.on_slider_moved(key, raw_value)
            snapshot = controller.snapshot()
            event = {
                "event": "slider_change" if accepted else "slider_rejected",
                "metric_key": key,
                "old_value": old_value,
                "new_value": snapshot.metrics[key].value if accepted else raw_value,
                "source": "slider",
                "overall_score": snapshot.overall_score,
            }
            if controller.last_rejection is not None:
                event["reason"] = type(controller.last_rejection).__name__
    elif kind == "lock":
        was_locked = controller.store.is_locked(key)
        controller.on_lock_toggled(key)
        event = {
            "event": "lock_toggle",
            "metric_key": key,
            "old_value": was_locked,
            "new_value": controller.store.is_locked(key),
            "source": "button",
            "overall_score": controller.snapshot().overall_score,
        }

    return DashboardUpdate(
        snapshot=controller.snapshot(),
        samples=controller.samples(),
        metrics_data=storage.data if storage.writes else None,
        history_data=history.to_records() if event and event["event"] == "slider_change" else None,
        event=event,
    )


def slider_panel_view(snapshot: StoreSnapshot) -> Dict[str, Dict[str, Any]]:
    """Display properties for each metric's slider, label and lock button."""
    view: Dict[str, Dict[str, Any]] = {}
    for key in config.METRIC_KEYS:
        state = snapshot.metrics[key]
        view[key] = {
            "value": state.value,
            "disabled": state.locked,
            "label": str(state.value),
            "lock_class": "lock-button locked" if state.locked else "lock-button",
            "lock_text": "Unlock" if state.locked else "Lock",
        }
    return view


def overall_score_text(snapshot: StoreSnapshot) -> str:
    return f"Overall score: {snapshot.overall_score}"
