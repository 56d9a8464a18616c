"""Path constants for the disk monitor."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = PROJECT_ROOT / "diskmon"

# Default configuration shipped next to the package
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# User-specific state (allows running from read-only install directories)
_USER_STATE_ENV = os.environ.get("DISKMON_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".diskmon")
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"
LOGS_DIR = USER_STATE_DIR / "logs"
DEFAULT_LOG_FILE = LOGS_DIR / "diskmon.log"


def ensure_directories() -> None:
    """Create the per-user state directories if they don't exist."""
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_OVERRIDES_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    'PROJECT_ROOT',
    'PACKAGE_ROOT',
    'CONFIG_PATH',
    'USER_STATE_DIR',
    'USER_CONFIG_OVERRIDES_DIR',
    'LOGS_DIR',
    'DEFAULT_LOG_FILE',
    'ensure_directories',
]
