"""Logging setup shared by every personalizer component.

Loggers write colored lines to the console and plain lines to a rotating
``personalizer.log``. The directory comes from ``PERSONALIZER_LOG_DIR`` when
set, otherwise ``logs/`` beside the package.
"""

import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, List, Optional

import colorlog


CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

LOG_FILE_NAME = "personalizer.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _resolve_log_dir(log_dir: Optional[Path]) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    from_env = os.environ.get("PERSONALIZER_LOG_DIR")
    if from_env:
        return Path(from_env)
    return Path(__file__).resolve().parent.parent.parent / "logs"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def _build_handlers(level: int, log_dir: Path) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setFormatter(
        colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LEVEL_COLORS)
    )

    log_dir.mkdir(parents=True, exist_ok=True)
    rotating = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))

    for handler in (console, rotating):
        handler.setLevel(level)
    return [console, rotating]


def get_logger(name: str, log_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Return the named logger, attaching handlers on first use.

    Args:
        name: Usually the calling module's ``__name__``.
        log_dir: Override for the rotating log directory.
        level: Level name such as ``AppConfig.log_level``. Falls back to the
            ``LOG_LEVEL`` environment variable, then INFO.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    resolved = _resolve_level(level)
    logger.setLevel(resolved)
    for handler in _build_handlers(resolved, _resolve_log_dir(log_dir)):
        logger.addHandler(handler)
    logger.propagate = False
    return logger


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str) -> Iterator[None]:
    """Log at DEBUG how long the wrapped block took, even when it raises."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"{operation} took {elapsed_ms:.1f}ms")


def log_exception(logger: logging.Logger, operation: str, exception: Exception) -> None:
    """Log a failed operation with its traceback.

    ``AppException`` subclasses contribute their code and context.
    """
    if hasattr(exception, "to_dict"):
        details = exception.to_dict()
    else:
        details = {"error": type(exception).__name__, "message": str(exception)}
    logger.error(f"Failed: {operation} {details}", exc_info=exception)
