"""
Logging setup for host applications embedding the attendance core.

Library modules only create module loggers; call setup_logging() once from
the application entry point.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

from config import LOG_DIR, LOG_FILE, LOG_LEVEL, LOG_MAX_BYTES, LOG_BACKUP_COUNT

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_level: str = LOG_LEVEL,
                  log_dir: Optional[Union[str, Path]] = LOG_DIR,
                  max_log_size: int = LOG_MAX_BYTES,
                  backup_count: int = LOG_BACKUP_COUNT) -> logging.Logger:
    """
    Configure the root logger with a console handler and, unless log_dir is
    None, a rotating file handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory for the rotating log file (None = console only)
        max_log_size: size in bytes before the log file rotates
        backup_count: number of rotated files kept
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # drop handlers from a previous call
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE,
            maxBytes=max_log_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.debug("Logging configured (level=%s, dir=%s)", logging.getLevelName(level), log_dir)
    return root_logger
