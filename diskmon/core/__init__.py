from .activity_gate import ActivityGate
from .bus import MessageBus, MethodBinding, SignalBinding, UnknownMethodError
from .check_executor import CheckExecutor
from .disk_backend import DiskUsageBackend, PsutilDiskBackend
from .disk_monitor import DiskMonitor
from .monitor_config import MonitorConfig, MountLimit, parse_mounts
from .monitor_state import ActivityMode, MonitorState
from .scheduler import ScheduleRequest, Scheduler, interval_for_mode
from .shutdown_coordinator import ShutdownCoordinator, get_shutdown_coordinator
from .wakeup_provider import WakeupProvider

__all__ = [
    'ActivityGate',
    'ActivityMode',
    'CheckExecutor',
    'DiskMonitor',
    'DiskUsageBackend',
    'MessageBus',
    'MethodBinding',
    'MonitorConfig',
    'MonitorState',
    'MountLimit',
    'PsutilDiskBackend',
    'ScheduleRequest',
    'Scheduler',
    'ShutdownCoordinator',
    'SignalBinding',
    'UnknownMethodError',
    'WakeupProvider',
    'get_shutdown_coordinator',
    'interval_for_mode',
    'parse_mounts',
]
