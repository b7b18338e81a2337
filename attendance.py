# attendance.py
import csv
import logging
import math
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from config import HISTORY_KEY
from models import AttendanceEntry
from storage import KeyValueBackend, load_list, save_list
from utils import EventHub, Listener, ms_to_str

logger = logging.getLogger(__name__)

ATTENDANCE_CHANGED = "attendance_changed"


class AttendanceLedger:
    """
    Append-only history of successful verifications, oldest first.

    Stored under one key as [{"name": ..., "time": <ms since epoch>}, ...].
    The ledger never reads the clock; callers pass the timestamp in.
    """

    def __init__(self, backend: KeyValueBackend, key: str = HISTORY_KEY):
        self.backend = backend
        self.key = key
        self.events = EventHub()
        self._lock = threading.Lock()

    def all(self) -> List[AttendanceEntry]:
        entries = []
        for row in load_list(self.backend, self.key):
            if (not isinstance(row, dict) or not isinstance(row.get("name"), str)
                    or not isinstance(row.get("time"), (int, float)) or isinstance(row.get("time"), bool)
                    or not math.isfinite(row["time"])):
                logger.warning("Skipping malformed attendance entry under %s", self.key)
                continue
            entries.append(AttendanceEntry(name=row["name"], timestamp=int(row["time"])))
        return entries

    def append(self, name: str, timestamp: int) -> AttendanceEntry:
        entry = AttendanceEntry(name=name, timestamp=int(timestamp))
        with self._lock:
            rows = [{"name": e.name, "time": e.timestamp} for e in self.all()]
            rows.append({"name": entry.name, "time": entry.timestamp})
            save_list(self.backend, self.key, rows)
        logger.info("Attendance marked for %r at %s", name, ms_to_str(entry.timestamp))
        self.events.emit(ATTENDANCE_CHANGED, entry)
        return entry

    def __len__(self):
        return len(self.all())

    def last_seen(self) -> Dict[str, int]:
        """Latest timestamp per name."""
        last = {}
        for e in self.all():
            last[e.name] = e.timestamp
        return last

    def user_attendance_stats(self) -> Dict[str, int]:
        """Number of attendance entries per name."""
        stats: Dict[str, int] = {}
        for e in self.all():
            stats[e.name] = stats.get(e.name, 0) + 1
        return stats

    def entries_on(self, day: date) -> List[AttendanceEntry]:
        return [e for e in self.all() if datetime.fromtimestamp(e.timestamp / 1000).date() == day]

    def daily_stats(self, day: Optional[date] = None):
        day = day or date.today()
        entries = self.entries_on(day)
        return {"count": len(entries), "unique": len({e.name for e in entries})}

    def export_csv(self, path: Union[str, Path]) -> Path:
        """Write the whole history as a timestamp,name CSV report."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["timestamp", "name"])
            for e in self.all():
                w.writerow([ms_to_str(e.timestamp), e.name])
        return path

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)
