"""Metric state engine: current values, lock flags and the overall score.

The store is the single source of truth for the dashboard. Every mutation goes
through :meth:`MetricStore.set_value` or :meth:`MetricStore.set_locked`, each of
which persists the full state through the injected storage backend. If the
backend fails, the store keeps working in memory and reports the failure once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from . import config
from .storage import PersistenceUnavailable


class MetricStoreError(Exception):
    """Base class for rejected store operations."""


class InvalidKey(MetricStoreError, KeyError):
    def __init__(self, key: Any):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"unknown metric key: {self.key!r}"


class MetricLocked(MetricStoreError):
    def __init__(self, key: str):
        super().__init__(f"metric {key!r} is locked")
        self.key = key


class InvalidValue(MetricStoreError, ValueError):
    def __init__(self, key: str, raw_value: Any):
        super().__init__(f"value {raw_value!r} for {key!r} is not a number")
        self.key = key
        self.raw_value = raw_value


@dataclass(frozen=True)
class MetricState:
    value: int
    locked: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "locked": self.locked}


@dataclass(frozen=True)
class StoreSnapshot:
    metrics: Mapping[str, MetricState]
    overall_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": {key: state.to_dict() for key, state in self.metrics.items()},
            "overall_score": self.overall_score,
        }


def round_half_away(number: Any) -> int:
    frac = Fraction(number)
    magnitude = math.floor(abs(frac) + Fraction(1, 2))
    return -magnitude if frac < 0 else magnitude


def coerce_metric_value(key: str, raw_value: Any) -> int:
    """Clamp ``raw_value`` into the metric range and round it to an integer."""
    if isinstance(raw_value, bool):
        raise InvalidValue(key, raw_value)
    if isinstance(raw_value, int):
        # Arbitrarily large ints would overflow float().
        return max(config.VALUE_MIN, min(config.VALUE_MAX, raw_value))
    try:
        num = float(raw_value)
    except (TypeError, ValueError):
        raise InvalidValue(key, raw_value) from None
    if math.isnan(num):
        raise InvalidValue(key, raw_value)
    num = max(float(config.VALUE_MIN), min(float(config.VALUE_MAX), num))
    return round_half_away(num)


def _normalize_weights(weights: Optional[Mapping[str, float]]) -> Dict[str, Fraction]:
    raw = dict(config.SCORE_WEIGHTS if weights is None else weights)
    if set(raw) != set(config.METRIC_KEYS):
        raise ValueError(f"weights must cover exactly {config.METRIC_KEYS}")
    normalized = {key: Fraction(raw[key]) for key in config.METRIC_KEYS}
    if any(w < 0 for w in normalized.values()) or sum(normalized.values()) == 0:
        raise ValueError("weights must be non-negative with a positive total")
    return normalized


def _restore_entry(entry: Any) -> Optional[MetricState]:
    if not isinstance(entry, Mapping):
        return None
    value = entry.get("value")
    locked = entry.get("locked")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not config.VALUE_MIN <= value <= config.VALUE_MAX:
        return None
    if not isinstance(locked, bool):
        return None
    return MetricState(value=value, locked=locked)


class MetricStore:
    def __init__(
        self,
        storage,
        *,
        weights: Optional[Mapping[str, float]] = None,
        on_persistence_unavailable: Optional[Callable[[PersistenceUnavailable], None]] = None,
    ):
        self._storage = storage
        self._weights = _normalize_weights(weights)
        self.on_persistence_unavailable = on_persistence_unavailable
        self._persistence_available = True
        self._values: Dict[str, int] = {key: config.DEFAULT_VALUE for key in config.METRIC_KEYS}
        self._locked: Dict[str, bool] = {key: config.DEFAULT_LOCKED for key in config.METRIC_KEYS}
        self._overall_score = self._compute_overall()

    @property
    def persistence_available(self) -> bool:
        return self._persistence_available

    def initialize(self) -> StoreSnapshot:
        """Load persisted state, falling back to defaults key by key."""
        persisted: Any = None
        if self._persistence_available:
            try:
                persisted = self._storage.read()
            except PersistenceUnavailable as exc:
                self._mark_unavailable(exc)
        if not isinstance(persisted, Mapping):
            persisted = {}
        for key in config.METRIC_KEYS:
            state = _restore_entry(persisted.get(key))
            if state is None:
                state = MetricState(value=config.DEFAULT_VALUE, locked=config.DEFAULT_LOCKED)
            self._values[key] = state.value
            self._locked[key] = state.locked
        self._overall_score = self._compute_overall()
        return self.snapshot()

    def set_value(self, key: str, raw_value: Any) -> StoreSnapshot:
        self._check_key(key)
        if self._locked[key]:
            raise MetricLocked(key)
        self._values[key] = coerce_metric_value(key, raw_value)
        self._overall_score = self._compute_overall()
        self._persist()
        return self.snapshot()

    def set_locked(self, key: str, locked: bool) -> StoreSnapshot:
        self._check_key(key)
        self._locked[key] = bool(locked)
        self._persist()
        return self.snapshot()

    def value(self, key: str) -> int:
        self._check_key(key)
        return self._values[key]

    def is_locked(self, key: str) -> bool:
        self._check_key(key)
        return self._locked[key]

    def snapshot(self) -> StoreSnapshot:
        metrics = {
            key: MetricState(value=self._values[key], locked=self._locked[key])
            for key in config.METRIC_KEYS
        }
        return StoreSnapshot(metrics=MappingProxyType(metrics), overall_score=self._overall_score)

    def persisted_state(self) -> Dict[str, Dict[str, Any]]:
        return {
            key: {"value": self._values[key], "locked": self._locked[key]}
            for key in config.METRIC_KEYS
        }

    def _check_key(self, key: Any) -> None:
        if key not in config.METRIC_KEYS:
            raise InvalidKey(key)

    def _compute_overall(self) -> int:
        total = sum(self._weights.values())
        weighted = sum(self._weights[key] * self._values[key] for key in config.METRIC_KEYS)
        return round_half_away(weighted / total)

    def _persist(self) -> None:
        if not self._persistence_available:
            return
        try:
            self._storage.write(self.persisted_state())
        except PersistenceUnavailable as exc:
            self._mark_unavailable(exc)

    def _mark_unavailable(self, exc: PersistenceUnavailable) -> None:
        # Reported once; later writes are skipped rather than retried.
        self._persistence_available = False
        print("[ticket-store] persistence unavailable, continuing in memory:", exc)
        if self.on_persistence_unavailable is not None:
            self.on_persistence_unavailable(exc)
