"""String key-value backends for the local document store.

``FileKeyValueStore`` persists one file per key (the browser's localStorage
counterpart); ``MemoryKeyValueStore`` lives only as long as its owner (the
sessionStorage counterpart used for demo sessions).
"""

import os
import threading
import time
import uuid
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class FileKeyValueStore:
    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class DemoSessionRegistry:
    """One in-memory store per server-issued demo session id.

    Sessions idle for longer than ``idle_seconds`` are dropped, and once
    ``max_sessions`` are live the least recently used one is evicted.
    """

    def __init__(
        self,
        max_sessions: int = 1000,
        idle_seconds: float = 6 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self._clock = clock
        # session id -> (store, last access), least recently used first
        self._sessions: "OrderedDict[str, Tuple[MemoryKeyValueStore, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        while self._sessions:
            session_id, (_, last_seen) = next(iter(self._sessions.items()))
            if now - last_seen <= self.idle_seconds:
                break
            del self._sessions[session_id]

    def start(self) -> Tuple[str, MemoryKeyValueStore]:
        session_id = uuid.uuid4().hex
        store = MemoryKeyValueStore()
        with self._lock:
            now = self._clock()
            self._expire(now)
            while len(self._sessions) >= self.max_sessions:
                self._sessions.popitem(last=False)
            self._sessions[session_id] = (store, now)
        return session_id, store

    def get(self, session_id: str) -> Optional[MemoryKeyValueStore]:
        """The session's store, or None if the id is unknown or has expired."""
        with self._lock:
            now = self._clock()
            self._expire(now)
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            self._sessions[session_id] = (entry[0], now)
            self._sessions.move_to_end(session_id)
            return entry[0]

    def end(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
