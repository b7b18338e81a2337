# registry.py
import logging
from typing import Callable, List

import numpy as np

from config import REFS_KEY, TARGET_SIZE
from face_engine import decode_data_url, normalize, to_data_url
from models import Reference
from storage import KeyValueBackend, load_list, save_list
from utils import EventHub, Listener

logger = logging.getLogger(__name__)

REFERENCES_CHANGED = "references_changed"


class Registry:
    """
    Ordered collection of reference fingerprints, persisted under one key as
    [{"name": ..., "dataURL": "data:image/png;base64,..."}, ...].
    """

    def __init__(self, backend: KeyValueBackend, key: str = REFS_KEY, target_size: int = TARGET_SIZE):
        self.backend = backend
        self.key = key
        self.target_size = int(target_size)
        self.events = EventHub()

    def _load_raw(self) -> List[dict]:
        raw = []
        for entry in load_list(self.backend, self.key):
            if (not isinstance(entry, dict)
                    or not isinstance(entry.get("name"), str)
                    or not isinstance(entry.get("dataURL"), str)):
                logger.warning("Skipping malformed reference entry under %s", self.key)
                continue
            raw.append(entry)
        return raw

    def _save_raw(self, raw: List[dict]) -> None:
        save_list(self.backend, self.key, raw)
        self.events.emit(REFERENCES_CHANGED, [e["name"] for e in raw])

    def list(self) -> List[Reference]:
        """All references in insertion order (raises DecodeError on a corrupt image)."""
        return [Reference(name=e["name"], image=decode_data_url(e["dataURL"])) for e in self._load_raw()]

    def names(self) -> List[str]:
        """Distinct registered names, first-seen order."""
        seen = []
        for e in self._load_raw():
            if e["name"] not in seen:
                seen.append(e["name"])
        return seen

    def count(self) -> int:
        return len(self._load_raw())

    def add(self, name: str, image: np.ndarray) -> Reference:
        """Append a reference; image is an RGBA array and is normalized here."""
        if not isinstance(name, str) or not name:
            raise ValueError("reference name must be a non-empty string")
        fp = normalize(image, self.target_size)
        raw = self._load_raw()
        raw.append({"name": name, "dataURL": to_data_url(fp)})
        self._save_raw(raw)
        logger.info("Registered reference %r (%d total)", name, len(raw))
        return Reference(name=name, image=fp)

    def remove(self, name: str) -> int:
        """Delete every reference named exactly name; returns how many were removed."""
        raw = self._load_raw()
        kept = [e for e in raw if e["name"] != name]
        removed = len(raw) - len(kept)
        self._save_raw(kept)
        if removed:
            logger.info("Removed %d reference(s) for %r", removed, name)
        else:
            logger.debug("No references named %r to remove", name)
        return removed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)
