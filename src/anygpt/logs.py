"""Log file setup and inspection helpers."""

from __future__ import annotations

from collections import deque
import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path

from anygpt.storage import default_state_dir

LOG_FILENAME = "anygpt.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5
LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] [%(module)s:%(lineno)d] %(funcName)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "anygpt-file"


def default_log_dir() -> Path:
    override = os.getenv("ANYGPT_LOG_DIR")
    if override:
        return Path(override)
    return default_state_dir()


def log_path(log_dir: Path | None = None) -> Path:
    return (log_dir or default_log_dir()) / LOG_FILENAME


def configure_logging(*, verbose: bool = False, log_dir: Path | None = None) -> Path:
    """Attach the rotating file handler to the ``anygpt`` logger.

    Debug records are only written when ``verbose`` is set. Calling this again
    replaces the previous handler.
    """
    path = log_path(log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    _detach_file_handler()
    root = logging.getLogger("anygpt")
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
        delay=True,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    return path


def recent_logs(lines: int = 100, log_dir: Path | None = None) -> str:
    path = log_path(log_dir)
    if not path.exists():
        return "No logs available"
    with path.open(encoding="utf-8", errors="replace") as handle:
        tail = deque(handle, maxlen=max(0, lines))
    return "".join(tail).rstrip("\n")


def clear_logs(log_dir: Path | None = None) -> int:
    directory = log_dir or default_log_dir()
    if not directory.exists():
        return 0
    _detach_file_handler()
    removed = 0
    for path in directory.glob(f"{LOG_FILENAME}*"):
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        removed += 1
    return removed


def _detach_file_handler() -> None:
    root = logging.getLogger("anygpt")
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()
