# utils.py
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


def now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_str(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


class EventHub:
    """Tiny observer list; listeners get (event_name, payload)."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception:
                # listener errors are logged, not propagated to the writer
                logger.exception("Listener %r failed on %s", listener, event)
