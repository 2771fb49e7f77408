"""Small persistent JSON key-value stores.

``JsonFileStore`` keeps every key in one JSON document under the data
directory (``var/`` by default) and writes it atomically through a tmp file
guarded by an advisory lock file. ``InMemoryStore`` offers the same surface
for tests and ephemeral runs.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import threading
import time
from typing import Any, Dict

from soilmonitor.domain.exceptions import RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILE = "soilmonitor.json"


class FileLock:
    """Simple file-lock using a lockfile (cross-platform, advisory).

    Note: This is a lightweight lock suitable for single-writer or low-contention
    scenarios. It uses atomic creation of a .lock file and retries until timeout.
    """

    def __init__(self, lock_path: str, timeout: float = 5.0, retry: float = 0.05) -> None:
        self.lock_path = lock_path
        self.timeout = float(timeout)
        self.retry = float(retry)
        self._acquired = False

    def acquire(self) -> bool:
        start = time.time()
        while True:
            try:
                # O_EXCL ensures atomic creation; failing if exists
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                self._acquired = True
                return True
            except FileExistsError:
                if (time.time() - start) >= self.timeout:
                    return False
                time.sleep(self.retry)

    def release(self) -> None:
        try:
            if self._acquired and os.path.exists(self.lock_path):
                os.unlink(self.lock_path)
        finally:
            self._acquired = False

    def __enter__(self):
        ok = self.acquire()
        if not ok:
            raise TimeoutError(f"Failed to acquire file lock: {self.lock_path}")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


class JsonFileStore:
    """Key-value store persisted as a single JSON document.

    Reads are served from an in-process cache that is populated from disk on
    first access. A corrupt or unreadable file degrades to an empty store;
    write failures raise :class:`RepositoryError`.
    """

    def __init__(self, data_dir: str, filename: str = DEFAULT_STORE_FILE) -> None:
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, filename)
        self._lock = threading.Lock()
        self._cache: Dict[str, Any] | None = None

    def _read_file(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with FileLock(self.path + ".lock"):
                with open(self.path, "r", encoding="utf-8") as fh:
                    data = json.load(fh)
        except Exception as e:
            logger.warning("Failed to load JSON store %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("JSON store %s does not hold an object; ignoring contents", self.path)
            return {}
        return data

    def _data(self) -> Dict[str, Any]:
        if self._cache is None:
            self._cache = self._read_file()
        return self._cache

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data().get(key, default))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = dict(self._data())
            data[key] = value
            self._write(data)
            self._cache = data

    def delete(self, key: str) -> None:
        with self._lock:
            data = dict(self._data())
            if data.pop(key, None) is None:
                return
            self._write(data)
            self._cache = data

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with FileLock(self.path + ".lock"):
                tmp = self.path + ".tmp"
                with open(tmp, "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
                os.replace(tmp, self.path)
        except Exception as e:
            raise RepositoryError(
                f"Failed to save JSON store {self.path}: {e}", detail={"path": self.path}
            ) from e


class InMemoryStore:
    """Dict-backed store with the same surface as :class:`JsonFileStore`."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
