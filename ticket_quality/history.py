from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Tuple

from . import config


def current_timestamp() -> str:
    ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return ts.replace("+00:00", "Z")


@dataclass(frozen=True)
class HistorySample:
    timestamp: str
    overall_score: int
    metric_snapshot: Mapping[str, int]

    @classmethod
    def from_snapshot(cls, snapshot, timestamp: Optional[str] = None) -> "HistorySample":
        values = {key: state.value for key, state in snapshot.metrics.items()}
        return cls(
            timestamp=timestamp or current_timestamp(),
            overall_score=snapshot.overall_score,
            metric_snapshot=MappingProxyType(values),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "overall_score": self.overall_score,
            "metric_snapshot": dict(self.metric_snapshot),
        }

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "HistorySample":
        metrics = record["metric_snapshot"]
        if not isinstance(metrics, Mapping):
            raise ValueError("metric_snapshot must be a mapping")
        return cls(
            timestamp=str(record["timestamp"]),
            overall_score=int(record["overall_score"]),
            metric_snapshot=MappingProxyType({str(k): int(v) for k, v in metrics.items()}),
        )


class ScoreHistory:
    """Bounded, append-only series of score samples (oldest evicted first)."""

    def __init__(self, capacity: int = config.HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self._capacity = capacity
        self._samples: Deque[HistorySample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def record(self, sample: HistorySample) -> None:
        self._samples.append(sample)

    def samples(self) -> Tuple[HistorySample, ...]:
        return tuple(self._samples)

    def to_records(self) -> List[Dict[str, Any]]:
        return [sample.to_dict() for sample in self._samples]

    @classmethod
    def from_records(
        cls, records: Optional[Iterable[Any]], capacity: int = config.HISTORY_CAPACITY
    ) -> "ScoreHistory":
        history = cls(capacity)
        for record in records or []:
            if not isinstance(record, Mapping):
                continue
            try:
                history.record(HistorySample.from_dict(record))
            except (KeyError, TypeError, ValueError):
                continue
        return history
