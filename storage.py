"""
Key-value storage backends for the persisted collections.

Each collection lives under one key as a JSON-encoded list and is rewritten
in full on every mutation.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class KeyValueBackend:
    """Minimal string key-value interface used by Registry and AttendanceLedger."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryBackend(KeyValueBackend):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileBackend(KeyValueBackend):
    """Stores each key as <directory>/<key>.json."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with self._lock:
            return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._path(key).write_text(value, encoding="utf-8")


def load_list(backend: KeyValueBackend, key: str) -> List[dict]:
    """Read a JSON list; absent or malformed content reads as []."""
    try:
        raw = backend.get(key)
        if raw is None:
            return []
        data = json.loads(raw)
    except ValueError:
        # also covers UnicodeDecodeError from a non UTF-8 file
        logger.warning("Malformed JSON under key %s, treating as empty", key)
        return []
    if not isinstance(data, list):
        logger.warning("Expected a list under key %s, got %s; treating as empty", key, type(data).__name__)
        return []
    return data


def save_list(backend: KeyValueBackend, key: str, items: List[dict]) -> None:
    backend.set(key, json.dumps(items))
