# config.py
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = Path(os.getenv("ATTENDANCE_DATA_DIR", str(BASE_DIR / "app" / "data")))
LOG_DIR = Path(os.getenv("ATTENDANCE_LOG_DIR", str(BASE_DIR / "app" / "logs")))
REPORTS_DIR = BASE_DIR / "app" / "reports"

# Storage keys (one per persisted collection)
REFS_KEY = os.getenv("ATTENDANCE_REFS_KEY", "face_attendance_refs_v1")
HISTORY_KEY = os.getenv("ATTENDANCE_HISTORY_KEY", "face_attendance_history_v1")

# Thresholds & params
TARGET_SIZE = int(os.getenv("ATTENDANCE_TARGET_SIZE", "160"))          # normalized fingerprint is TARGET_SIZE x TARGET_SIZE RGBA
DIFF_THRESHOLD = float(os.getenv("ATTENDANCE_DIFF_THRESHOLD", "55"))   # max mean RGB difference (0-255) to accept

# Stored reference images
REF_IMAGE_MIME = "image/png"  # lossless, keeps reloaded fingerprints pixel-identical

# Logging
LOG_LEVEL = os.getenv("ATTENDANCE_LOG_LEVEL", "INFO")
LOG_FILE = "attendance.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3
