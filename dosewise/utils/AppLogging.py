"""
Logging for DoseWise.

One "DoseWise" logger shared by every component, writing to:
- dosewise.log        DEBUG and up, rotated by size, backups gzipped
- dosewise_error.log  WARNING and up, same rotation
- stdout              LOG_LEVEL (INFO by default)

Rotated files older than LOG_RETENTION_DAYS are removed at startup.
Messages carry a "[Component]" prefix.
"""

import gzip
import logging
import logging.handlers
import os
import shutil
import sys
import time
from pathlib import Path

LOG_DIR = os.getenv("LOG_DIR", "data/logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "7"))

# (file name, level, max bytes, backups)
_FILE_TARGETS = (
    ("dosewise.log", logging.DEBUG, 5 * 1024 * 1024, 5),
    ("dosewise_error.log", logging.WARNING, 1024 * 1024, 3),
)

_FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(module)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
_CONSOLE_FORMAT = logging.Formatter("%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S")


def _gzip_rotate(source: str, dest: str) -> None:
    try:
        with open(source, "rb") as raw, gzip.open(dest, "wb") as packed:
            shutil.copyfileobj(raw, packed)
        os.remove(source)
    except OSError:
        # Keep the uncompressed backup rather than lose it
        os.replace(source, dest)


def _file_handler(log_dir: str, name: str, level: int, max_bytes: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, name), maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(_FILE_FORMAT)
    handler.namer = lambda rotated: rotated + ".gz"
    handler.rotator = _gzip_rotate
    return handler


def _purge_expired_logs(log_dir: str, retention_days: int) -> int:
    """Remove DoseWise log files not modified within *retention_days*."""
    cutoff = time.time() - retention_days * 86400
    removed = 0
    for path in Path(log_dir).glob("dosewise*.log*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except FileNotFoundError:
            continue
    return removed


def setup_logging(log_dir: str = LOG_DIR, console_level: str = LOG_LEVEL,
                  retention_days: int = LOG_RETENTION_DAYS) -> logging.Logger:
    """
    Configure and return the application logger.

    Safe to call more than once; handlers are attached only the first time.
    """
    app_logger = logging.getLogger("DoseWise")
    if app_logger.handlers:
        return app_logger

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    removed = _purge_expired_logs(log_dir, retention_days)

    app_logger.setLevel(logging.DEBUG)
    app_logger.propagate = False
    for name, level, max_bytes, backups in _FILE_TARGETS:
        app_logger.addHandler(_file_handler(log_dir, name, level, max_bytes, backups))

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(_CONSOLE_FORMAT)
    app_logger.addHandler(console)

    app_logger.info(f"[Logging] Writing to {log_dir} (retention {retention_days} days)")
    if removed:
        app_logger.info(f"[Logging] Removed {removed} expired log file(s)")
    return app_logger


def reconfigure_console_level(level: int = logging.INFO) -> None:
    """Change console verbosity at runtime (``--verbose``)."""
    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)
    logger.info(f"[Logging] Console level set to {logging.getLevelName(level)}")


logger = setup_logging()
