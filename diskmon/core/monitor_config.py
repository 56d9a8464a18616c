"""Typed monitor configuration built from the ``key = value`` config file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config_manager import ConfigManager, get_config_manager
from .logging_utils import get_module_logger

logger = get_module_logger("MonitorConfig")

ACTIVE_CHECK_INTERVAL = 300      # 5 minutes
IDLE_CHECK_INTERVAL = 1800       # 30 minutes
MAXTIME_FROM_LAST_CHECK = 900    # 15 minutes
WAKEUP_SLACK = 120
WAKEUP_ALIGN_INTERVAL = 30
DEFAULT_MOUNTS = "/:90"
DEFAULT_API_PORT = 8095


@dataclass(frozen=True)
class MountLimit:
    """A watched mount point and the usage percentage that triggers a report."""
    path: str
    max_usage_percent: int


def parse_mounts(value: str) -> List[MountLimit]:
    """Parse ``"/:90, /home:85"`` into mount limits.

    Entries without a limit, or with a limit outside 0-100, are skipped with
    a warning.
    """
    mounts: List[MountLimit] = []
    for raw in value.split(','):
        entry = raw.strip()
        if not entry:
            continue
        path, sep, limit = entry.rpartition(':')
        if not sep or not path:
            logger.warning("Ignoring mount entry without limit: %s", entry)
            continue
        try:
            percent = int(limit)
        except ValueError:
            logger.warning("Ignoring mount entry with invalid limit: %s", entry)
            continue
        if not 0 <= percent <= 100:
            logger.warning("Ignoring mount entry with out-of-range limit: %s", entry)
            continue
        mounts.append(MountLimit(path=path.strip(), max_usage_percent=percent))
    return mounts


@dataclass
class MonitorConfig:
    active_check_interval: float = ACTIVE_CHECK_INTERVAL
    idle_check_interval: float = IDLE_CHECK_INTERVAL
    max_time_from_last_check: float = MAXTIME_FROM_LAST_CHECK
    wakeup_slack: float = WAKEUP_SLACK
    wakeup_align_interval: float = WAKEUP_ALIGN_INTERVAL
    mounts: List[MountLimit] = field(default_factory=lambda: parse_mounts(DEFAULT_MOUNTS))

    api_enabled: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = DEFAULT_API_PORT
    api_localhost_only: bool = True

    log_level: str = "info"
    console_output: bool = True
    log_file: Optional[Path] = None

    @classmethod
    def from_config(
        cls,
        config: Dict[str, str],
        manager: Optional[ConfigManager] = None,
    ) -> "MonitorConfig":
        cm = manager or get_config_manager()
        log_file = cm.get_str(config, 'log_file', default='')
        result = cls(
            active_check_interval=cm.get_float(config, 'active_check_interval', ACTIVE_CHECK_INTERVAL),
            idle_check_interval=cm.get_float(config, 'idle_check_interval', IDLE_CHECK_INTERVAL),
            max_time_from_last_check=cm.get_float(config, 'max_time_from_last_check', MAXTIME_FROM_LAST_CHECK),
            wakeup_slack=cm.get_float(config, 'wakeup_slack', WAKEUP_SLACK),
            wakeup_align_interval=cm.get_float(config, 'wakeup_align_interval', WAKEUP_ALIGN_INTERVAL),
            mounts=parse_mounts(cm.get_str(config, 'mounts', DEFAULT_MOUNTS)),
            api_enabled=cm.get_bool(config, 'api_enabled', True),
            api_host=cm.get_str(config, 'api_host', "127.0.0.1"),
            api_port=cm.get_int(config, 'api_port', DEFAULT_API_PORT),
            api_localhost_only=cm.get_bool(config, 'api_localhost_only', True),
            log_level=cm.get_str(config, 'log_level', "info").lower(),
            console_output=cm.get_bool(config, 'console_output', True),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
        result.validate()
        return result

    def validate(self) -> None:
        """Raise ValueError for settings the scheduler cannot work with."""
        for name in ('active_check_interval', 'idle_check_interval'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ('max_time_from_last_check', 'wakeup_slack', 'wakeup_align_interval'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        if not 0 < self.api_port < 65536:
            raise ValueError(f"api_port out of range: {self.api_port}")
