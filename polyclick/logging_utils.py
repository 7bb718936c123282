from __future__ import annotations

import logging
import os
import sys
import traceback
from datetime import datetime
from pathlib import Path

LOG_DIR_ENV = "POLYCLICK_LOG_DIR"
DEBUG_ENV = "POLYCLICK_DEBUG"

_ROOT = "polyclick"
_STDERR_HANDLER = "polyclick-stderr"
_FILE_HANDLER = "polyclick-file"
_STDERR_FORMAT = "polyclick: %(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(threadName)s] %(message)s"


class _CurrentStderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time, not at creation."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        _ = value


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").strip().lower() not in {"", "0", "false", "no"}


def get_log_path() -> Path:
    """``$POLYCLICK_LOG_DIR/polyclick.log``, or the same file under ~/.cache."""

    configured = os.environ.get(LOG_DIR_ENV)
    base = Path(configured).expanduser() if configured else Path.home() / ".cache" / _ROOT / "logs"
    return base / f"{_ROOT}.log"


def _handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == name:
            return handler
    return None


def configure_logging() -> logging.Logger:
    """Attach the stderr and log-file handlers to the ``polyclick`` logger.

    Safe to call repeatedly: handlers are looked up by name, the stderr level
    is re-read from ``POLYCLICK_DEBUG`` and the file handler is swapped when
    ``POLYCLICK_LOG_DIR`` points somewhere new. The log file is only opened
    once something is written to it.
    """

    logger = logging.getLogger(_ROOT)
    logger.setLevel(logging.DEBUG)

    stderr = _handler(logger, _STDERR_HANDLER)
    if stderr is None:
        stderr = _CurrentStderrHandler()
        stderr.set_name(_STDERR_HANDLER)
        stderr.setFormatter(logging.Formatter(_STDERR_FORMAT))
        logger.addHandler(stderr)
    stderr.setLevel(logging.DEBUG if debug_enabled() else logging.WARNING)

    path = get_log_path()
    current = _handler(logger, _FILE_HANDLER)
    if isinstance(current, logging.FileHandler) and current.baseFilename == os.path.abspath(path):
        return logger
    if current is not None:
        logger.removeHandler(current)
        current.close()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Not writing a log file to %s: %s", path, exc)
        return logger
    file_handler = logging.FileHandler(path, encoding="utf-8", delay=True)
    file_handler.set_name(_FILE_HANDLER)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    logger.addHandler(file_handler)
    return logger


def log_exception(context: str, exc: BaseException) -> Path | None:
    """Append ``exc`` with its traceback to the log file; return the file."""

    path = get_log_path()
    stamp = datetime.now().isoformat(timespec="seconds")
    lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{stamp}] {context} failed: {type(exc).__name__}: {exc}\n")
            handle.writelines(lines)
            handle.write("\n")
    except OSError as write_exc:
        logging.getLogger(_ROOT).warning("Could not append to %s: %s", path, write_exc)
        return None
    return path
