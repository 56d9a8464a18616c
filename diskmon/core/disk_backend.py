"""
Disk usage backends.

The monitor only knows the narrow ``check_now()`` interface: a backend
queries the filesystems it watches and reports zero or more
``(path, percent_used)`` results through its callback. Deciding which
usage level is worth reporting is the backend's business.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Protocol

import psutil

from .logging_utils import get_module_logger
from .monitor_config import MountLimit

ResultCallback = Callable[[str, int], None]


class DiskUsageBackend(Protocol):
    def check_now(self) -> None:
        ...

    def set_result_callback(self, callback: ResultCallback) -> None:
        ...


class PsutilDiskBackend:
    """Reports mounts whose block usage reached their configured limit."""

    def __init__(
        self,
        mounts: Iterable[MountLimit],
        on_result: Optional[ResultCallback] = None,
    ):
        self.logger = get_module_logger("DiskBackend")
        self.mounts: List[MountLimit] = list(mounts)
        self._on_result = on_result

    def set_result_callback(self, callback: ResultCallback) -> None:
        self._on_result = callback

    def _usage_percent(self, path: str) -> Optional[int]:
        try:
            usage = psutil.disk_usage(path)
        except OSError as e:
            self.logger.warning("Cannot stat %s: %s", path, e)
            return None
        return int(round(usage.percent))

    def check_now(self) -> None:
        for mount in self.mounts:
            percent = self._usage_percent(mount.path)
            if percent is None:
                continue

            if percent >= mount.max_usage_percent:
                self.logger.warning(
                    "Disk space usage %d%% on %s exceeded the limit (%d%%)",
                    percent,
                    mount.path,
                    mount.max_usage_percent,
                )
                if self._on_result:
                    self._on_result(mount.path, percent)
            else:
                self.logger.debug("%s at %d%% (limit %d%%)", mount.path, percent, mount.max_usage_percent)
