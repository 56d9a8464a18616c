"""Root logging setup for the disk monitor daemon."""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from .monitor_config import MonitorConfig

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_MAX_BYTES = 256 * 1024
_DEFAULT_BACKUP_COUNT = 3

# aiohttp logs one access line per request; the status endpoint is polled
NOISY_LOGGERS = ("aiohttp.access",)

_configured = False


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level '{level}'")
        return numeric
    return int(level)


def _drop_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = _DEFAULT_MAX_BYTES,
    backup_count: int = _DEFAULT_BACKUP_COUNT,
    suppressed_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Install the stdout and rotating-file handlers on the root logger.

    Calling again without ``force`` only adjusts the level, so library code
    and tests can call this freely.

    Args:
        level: Level as an int or a name such as "debug".
        force: Rebuild handlers even when already configured.
        console: Emit records to stdout.
        log_file: Optional path for a rotating log file.
        max_bytes: Rotation size of the log file.
        backup_count: Number of rotated files to keep.
        suppressed_loggers: Logger names raised to WARNING.
    """

    global _configured
    numeric_level = _coerce_level(level)
    root = logging.getLogger()

    if not _configured or force:
        _drop_handlers(root)
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

        if console:
            stream_handler = logging.StreamHandler(sys.stdout)
            stream_handler.setFormatter(formatter)
            root.addHandler(stream_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        if not root.handlers:
            # file-only mode without a file still needs somewhere to go
            root.addHandler(logging.NullHandler())

        _configured = True

    root.setLevel(numeric_level)
    for name in suppressed_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_config(config: "MonitorConfig", *, force: bool = False) -> None:
    """Apply the logging section of a loaded :class:`MonitorConfig`."""
    configure_logging(
        config.log_level,
        force=force,
        console=config.console_output,
        log_file=config.log_file,
    )


__all__ = ["configure_logging", "configure_from_config", "LOG_FORMAT", "LOG_DATEFMT"]
