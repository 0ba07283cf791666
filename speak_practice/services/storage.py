"""
Key/value stores backing the progress service.

Values are JSON strings stored under string keys, one writer at a time.
"""

import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from speak_practice.config import Settings

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(RuntimeError):
    """Raised when a value cannot be persisted."""


class KeyValueStore(ABC):
    """Interface for synchronous string key/value storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...


class MemoryStore(KeyValueStore):
    """In-process store, mainly for tests and ephemeral deployments."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStore(KeyValueStore):
    """
    File-backed store with one ``<key>.json`` file per key.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written value.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to read {path}: {e}")
                return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.directory, prefix=f".{key}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(value)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.error(f"Failed to write {path}: {e}")
                raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            path.unlink(missing_ok=True)

    def keys(self) -> List[str]:
        with self._lock:
            if not self.directory.exists():
                return []
            return sorted(p.stem for p in self.directory.glob("*.json"))


def create_store(config: Settings) -> KeyValueStore:
    """Create the store selected by STORAGE_BACKEND."""
    backend = config.storage_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory progress store")
        return MemoryStore()
    if backend == "file":
        logger.info(f"Using JSON file progress store at {config.data_dir}")
        return JsonFileStore(config.data_dir)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
