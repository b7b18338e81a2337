# app.py
"""
AttendanceApp: the single entry point a host UI calls.

Registration, deletion and verification all go through one instance, which
owns the reference Registry and the AttendanceLedger on a shared storage
backend. UI code supplies names, confirms deletions and renders results; it is
notified of changes via subscribe().
"""
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from config import DATA_DIR, DIFF_THRESHOLD, TARGET_SIZE
from attendance import AttendanceLedger
from errors import DecodeError, NoReferences
from face_engine import FaceEngine
from matcher import best_match
from models import AttendanceEntry, Reference, VerificationResult
from registry import Registry
from storage import JsonFileBackend, KeyValueBackend
from utils import Listener, now_ms

logger = logging.getLogger(__name__)


class AttendanceApp:
    def __init__(self, backend: Optional[KeyValueBackend] = None,
                 threshold: float = DIFF_THRESHOLD,
                 target_size: int = TARGET_SIZE,
                 clock: Callable[[], int] = now_ms):
        self.backend = backend if backend is not None else JsonFileBackend(DATA_DIR)
        self.threshold = float(threshold)
        self.engine = FaceEngine(target_size)
        self.reg = Registry(self.backend, target_size=target_size)
        self.ledger = AttendanceLedger(self.backend)
        self.clock = clock
        # single writer for registry and ledger rewrites
        self._write_lock = threading.RLock()

    # ---------------- registration ----------------

    def register(self, name: str, image) -> Reference:
        """Normalize image and store it under name. Raises DecodeError / ValueError."""
        fp = self.engine.fingerprint(image)
        with self._write_lock:
            return self.reg.add(name, fp)

    def register_file(self, name: str, path) -> Reference:
        return self.register(name, Path(path))

    def register_data_url(self, name: str, data_url: str) -> Reference:
        return self.register(name, data_url)

    def delete(self, name: str) -> int:
        """Remove every reference named name; unknown names are a no-op."""
        with self._write_lock:
            return self.reg.remove(name)

    def references(self) -> List[Reference]:
        return self.reg.list()

    # ---------------- verification ----------------

    def verify(self, probe) -> VerificationResult:
        try:
            fp = self.engine.fingerprint(probe)
        except DecodeError as e:
            logger.warning("Verification failed, probe not decodable: %s", e)
            return VerificationResult.decode_error(str(e))

        with self._write_lock:
            try:
                refs = self.reg.list()
            except DecodeError as e:
                logger.error("Stored reference could not be decoded: %s", e)
                return VerificationResult.decode_error(str(e))
            try:
                best = best_match(fp, refs, self.engine.target_size)
            except NoReferences:
                logger.info("Verification skipped: no references found")
                return VerificationResult.no_references()

            if best.distance <= self.threshold:
                entry = self.ledger.append(best.name, self.clock())
                logger.info("Verified %s (diff=%.2f)", best.name, best.distance)
                return VerificationResult.matched(best.name, best.distance, entry.timestamp)

        logger.info("Not matched: nearest %s (diff=%.2f > %.2f)", best.name, best.distance, self.threshold)
        return VerificationResult.rejected(best.name, best.distance)

    def verify_file(self, path) -> VerificationResult:
        return self.verify(Path(path))

    def verify_data_url(self, data_url: str) -> VerificationResult:
        return self.verify(data_url)

    # ---------------- history ----------------

    def history(self) -> List[AttendanceEntry]:
        return self.ledger.all()

    def last_seen(self) -> Dict[str, int]:
        return self.ledger.last_seen()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Listen to both reference and attendance changes."""
        unsubs = [self.reg.subscribe(listener), self.ledger.subscribe(listener)]

        def unsubscribe():
            for u in unsubs:
                u()
        return unsubscribe
