from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol

from tradeworker.models.order import HighlightIds

log = logging.getLogger("store")

LIST_ID_KEY = "tradeworker.lastOcoOrderListId"
LIST_CLIENT_ID_KEY = "tradeworker.lastOcoListClientOrderId"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def update(self, values: Mapping[str, Optional[str]]) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        with self._lock:
            for k, v in values.items():
                if v is None:
                    self._data.pop(k, None)
                else:
                    self._data[k] = v


class JsonFileStore:
    """String key/value pairs kept in one JSON file; survives restarts."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("store %s unreadable, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(raw, dict):
            log.warning("store %s is not an object, treating as empty", self.path)
            return {}
        return {str(k): str(v) for k, v in raw.items() if v is not None}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        with self._lock:
            data = self._read()
            for k, v in values.items():
                if v is None:
                    data.pop(k, None)
                else:
                    data[k] = v
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write-then-rename so readers never see half a pair
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise


class HighlightMemory:
    """Identifiers of the last created bracket, shared by writer and reader."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @property
    def list_id(self) -> Optional[str]:
        return self.store.get(LIST_ID_KEY)

    @property
    def list_client_order_id(self) -> Optional[str]:
        return self.store.get(LIST_CLIENT_ID_KEY)

    def read(self) -> HighlightIds:
        return HighlightIds(
            list_id=self.list_id, list_client_order_id=self.list_client_order_id
        )

    def remember(self, list_id: Optional[str], list_client_order_id: Optional[str]) -> None:
        self.store.update(
            {LIST_ID_KEY: list_id, LIST_CLIENT_ID_KEY: list_client_order_id}
        )
        log.info(
            "remembered bracket list_id=%s client_id=%s", list_id, list_client_order_id
        )
