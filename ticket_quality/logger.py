from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from . import config
from .history import current_timestamp

_MONOTONIC_ZERO = time.monotonic()


def safe_session_id(session_id: Optional[str]) -> str:
    return session_id if isinstance(session_id, str) and session_id else "unknown"


def session_log_path(session_id: str) -> Path:
    return config.DATA_DIR / f"session_{safe_session_id(session_id)}.jsonl"


def elapsed_ms() -> int:
    return int((time.monotonic() - _MONOTONIC_ZERO) * 1000)


def base_log_record(
    session_id: str,
    *,
    event: str,
    metric_key: Optional[str] = None,
    old_value: Optional[Any] = None,
    new_value: Optional[Any] = None,
    source: str = "system",
    overall_score: Optional[int] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "schema_version": config.SCHEMA_VERSION,
        "session_id": safe_session_id(session_id),
        "timestamp": current_timestamp(),
        "event": event,
        "metric_key": metric_key,
        "old_value": old_value,
        "new_value": new_value,
        "source": source,
        "overall_score": overall_score,
        "elapsed_time": elapsed_ms(),
        "mode": config.APP_MODE,
    }
    if extras:
        record.update(extras)
    return record


def append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        fh.flush()


def write_log_record(session_id: str, record: Dict[str, Any]) -> None:
    try:
        append_jsonl(session_log_path(session_id), record)
    except OSError as exc:
        print("[dash-log]", exc, record)


def log_persistence_notice(session_id: str, message: str) -> Dict[str, Any]:
    record = base_log_record(
        session_id,
        event="persistence_unavailable",
        source="storage",
        extras={"message": message},
    )
    write_log_record(session_id, record)
    return record


class _PendingSlot:
    __slots__ = ("last_ts", "pending", "timer")

    def __init__(self):
        self.last_ts = float("-inf")
        self.pending: Optional[Dict[str, Any]] = None
        self.timer: Optional[threading.Timer] = None


class SliderLogThrottle:
    """Rate-limits slider drag records per session and metric.

    Inside one window only the newest record for a slider is kept and written
    when the window closes, so the final drag position always reaches the log.
    Sliders are throttled independently of each other.
    """

    def __init__(self, writer: Callable[[str, Dict[str, Any]], None] = write_log_record):
        self._writer = writer
        self._slots: Dict[Tuple[str, Optional[str]], _PendingSlot] = {}
        self._lock = threading.Lock()

    def submit(self, session_id: str, record: Dict[str, Any]) -> bool:
        """Write ``record`` now if the window is open; returns False if deferred."""
        slot_key = (session_id, record.get("metric_key"))
        with self._lock:
            slot = self._slots.setdefault(slot_key, _PendingSlot())
            now = time.monotonic()
            since_last = now - slot.last_ts
            if since_last >= config.LOG_RATE_LIMIT_SECONDS:
                slot.last_ts = now
                slot.pending = None
                if slot.timer is not None:
                    slot.timer.cancel()
                    slot.timer = None
                write_now = True
            else:
                slot.pending = record
                write_now = False
                if slot.timer is None:
                    delay = max(config.LOG_RATE_LIMIT_SECONDS - since_last, 0.01)
                    slot.timer = threading.Timer(delay, self.flush, args=(slot_key,))
                    slot.timer.daemon = True
                    slot.timer.start()
        if write_now:
            self._writer(session_id, record)
        return write_now

    def flush(self, slot_key: Tuple[str, Optional[str]]) -> None:
        with self._lock:
            slot = self._slots.get(slot_key)
            if slot is None:
                return
            if slot.timer is not None:
                slot.timer.cancel()
                slot.timer = None
            pending, slot.pending = slot.pending, None
            if pending is None:
                return
            slot.last_ts = time.monotonic()
        self._writer(slot_key[0], pending)


_SLIDER_THROTTLE = SliderLogThrottle()


def log_with_throttle(session_id: str, record: Dict[str, Any]) -> bool:
    return _SLIDER_THROTTLE.submit(session_id, record)
