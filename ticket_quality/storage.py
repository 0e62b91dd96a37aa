"""Storage backends for persisted metric state.

A backend holds one JSON-compatible payload under a namespace. ``read`` returns
``None`` when nothing has been stored yet; any failure to read or write is
raised as :class:`PersistenceUnavailable`.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from . import config


class PersistenceUnavailable(Exception):
    """Raised when the backing store cannot be read or written."""


class MemoryStorage:
    """Dict-backed storage.

    Also used to carry a browser ``dcc.Store`` payload through one callback:
    seed it with the incoming data, run the store operation, read ``data``
    back out.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None, *, namespace: str = config.STORAGE_NAMESPACE):
        self.namespace = namespace
        self._entries: Dict[str, Any] = {}
        if initial is not None:
            self._entries[namespace] = copy.deepcopy(initial)
        self.writes = 0

    @property
    def data(self) -> Optional[Dict[str, Any]]:
        payload = self._entries.get(self.namespace)
        return copy.deepcopy(payload) if payload is not None else None

    def read(self) -> Optional[Any]:
        return copy.deepcopy(self._entries.get(self.namespace))

    def write(self, payload: Dict[str, Any]) -> None:
        self._entries[self.namespace] = copy.deepcopy(payload)
        self.writes += 1


class JsonFileStorage:
    """Stores the payload as a JSON object keyed by namespace in a local file."""

    def __init__(self, path: Path = config.METRICS_FILE, *, namespace: str = config.STORAGE_NAMESPACE):
        self.path = Path(path)
        self.namespace = namespace

    def _load_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Corrupt content is handled by the store's per-key fallback.
            return {}
        except OSError as exc:
            raise PersistenceUnavailable(str(exc)) from exc
        return raw if isinstance(raw, dict) else {}

    def read(self) -> Optional[Any]:
        return self._load_file().get(self.namespace)

    def write(self, payload: Dict[str, Any]) -> None:
        try:
            contents = self._load_file()
        except PersistenceUnavailable:
            contents = {}
        contents[self.namespace] = payload
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(contents, fh, ensure_ascii=False, indent=2)
                fh.flush()
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceUnavailable(str(exc)) from exc
