"""Glue between UI events, the metric store and the score history."""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from .history import HistorySample, ScoreHistory, current_timestamp
from .metric_store import InvalidKey, InvalidValue, MetricLocked, MetricStore, StoreSnapshot

RenderListener = Callable[[StoreSnapshot, Tuple[HistorySample, ...]], None]
NoticeListener = Callable[[str], None]

PERSISTENCE_NOTICE = "Changes can't be saved on this device; they will be lost on reload."


class DashboardController:
    def __init__(
        self,
        store: MetricStore,
        history: ScoreHistory,
        *,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.history = history
        self._clock = clock or current_timestamp
        self._listeners: List[RenderListener] = []
        self._notice_listeners: List[NoticeListener] = []
        self._pending_notices: List[str] = []
        self.last_rejection: Optional[Exception] = None
        if store.on_persistence_unavailable is None:
            store.on_persistence_unavailable = self.persistence_unavailable
        if not store.persistence_available:
            self.persistence_unavailable()

    def subscribe(self, listener: RenderListener) -> None:
        self._listeners.append(listener)

    def subscribe_notice(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)
        pending, self._pending_notices = self._pending_notices, []
        for message in pending:
            listener(message)

    def persistence_unavailable(self, exc: Optional[Exception] = None) -> None:
        """Store callback: storage failed; tell the notice listeners once."""
        self._notify_notice(PERSISTENCE_NOTICE)

    def snapshot(self) -> StoreSnapshot:
        return self.store.snapshot()

    def samples(self) -> Tuple[HistorySample, ...]:
        return self.history.samples()

    def on_slider_moved(self, key: str, value: Any) -> bool:
        try:
            snapshot = self.store.set_value(key, value)
        except (MetricLocked, InvalidKey, InvalidValue) as exc:
            # Re-render from the store so the slider snaps back.
            self.last_rejection = exc
            self._notify(self.store.snapshot())
            return False
        self.last_rejection = None
        self.history.record(HistorySample.from_snapshot(snapshot, timestamp=self._clock()))
        self._notify(snapshot)
        return True

    def on_lock_toggled(self, key: str) -> bool:
        try:
            locked = self.store.is_locked(key)
            snapshot = self.store.set_locked(key, not locked)
        except InvalidKey as exc:
            self.last_rejection = exc
            return False
        self.last_rejection = None
        self._notify(snapshot)
        return True

    def _notify(self, snapshot: StoreSnapshot) -> None:
        samples = self.history.samples()
        for listener in list(self._listeners):
            listener(snapshot, samples)

    def _notify_notice(self, message: str) -> None:
        if not self._notice_listeners:
            self._pending_notices.append(message)
            return
        for listener in list(self._notice_listeners):
            listener(message)


def build_dashboard(
    storage,
    *,
    history: Optional[ScoreHistory] = None,
    weights=None,
    clock: Optional[Callable[[], str]] = None,
) -> DashboardController:
    """Create a store over ``storage``, attach a controller, then load state."""
    store = MetricStore(storage, weights=weights)
    controller = DashboardController(store, history if history is not None else ScoreHistory(), clock=clock)
    store.initialize()
    return controller
