"""
Disk Monitor - periodically checks disk usage and reports mounts over their limit.

All external stimuli are queued as events and handled one at a time by a
single dispatcher task:

- WakeupFired:        check, then re-arm the timer
- CheckRequested:     check on demand, acknowledge unconditionally
- StartupComplete:    allow checks from now on
- ActivityChanged:    activity gate (may check, always re-arms on a transition)
- DiskUsageResult:    re-emit as ``disk_space_change_ind``
- Transport(Dis)Connected: bind/unbind the bus method and signal tables

Requesting a check from the command line (HTTP transport):
    curl -X POST http://127.0.0.1:8095/api/v1/request/req_check
Announcing startup completion:
    curl -X POST http://127.0.0.1:8095/api/v1/signal/com.nokia.startup.signal/base_boot_done
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from .activity_gate import ActivityGate
from .asyncio_utils import cancel_and_wait, create_logged_task
from .bus import (
    BASE_BOOT_DONE,
    DISK_SPACE_CHANGE_IND,
    DISKMONITOR_REQ_INTERFACE,
    DISKMONITOR_SIG_INTERFACE,
    MCE_SIG_INTERFACE,
    REQ_CHECK,
    STARTUP_SIG_INTERFACE,
    SYSTEM_INACTIVITY_IND,
    MessageBus,
    MethodBinding,
    SignalBinding,
)
from .check_executor import CheckExecutor
from .disk_backend import DiskUsageBackend
from .events import (
    ActivityChanged,
    CheckRequested,
    DiskUsageResult,
    StartupComplete,
    TransportConnected,
    TransportDisconnected,
    WakeupFired,
    coerce_flag,
    coerce_usage,
    event_payload,
)
from .logging_utils import get_module_logger
from .monitor_config import MonitorConfig
from .monitor_state import MonitorState
from .scheduler import Scheduler
from .wakeup_provider import WakeupProvider

UNKNOWN_SENDER = "(unknown)"


class DiskMonitor:

    def __init__(
        self,
        config: MonitorConfig,
        backend: DiskUsageBackend,
        bus: Optional[MessageBus] = None,
        clock: Callable[[], float] = time.time,
        provider: Optional[WakeupProvider] = None,
    ):
        self.logger = get_module_logger("DiskMonitor")
        self.config = config
        self.state = MonitorState()
        self.bus = bus or MessageBus()
        self._clock = clock
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dispatcher: Optional[asyncio.Task] = None
        self._running = False

        self.provider = provider or WakeupProvider(
            self.post,
            align_interval=config.wakeup_align_interval,
            clock=clock,
        )
        self.scheduler = Scheduler(self.state, config, self.provider.arm)
        self.executor = CheckExecutor(self.state, backend, clock=clock)
        self.gate = ActivityGate(self.state, config, self.executor, self.scheduler, clock=clock)
        backend.set_result_callback(self.report_disk_usage)

        self.methods_bound = False
        self.signals_bound = False
        self._methods = [MethodBinding(REQ_CHECK, self.request_check)]
        self._signals = [
            SignalBinding(STARTUP_SIG_INTERFACE, BASE_BOOT_DONE, self._on_base_boot_done),
            SignalBinding(MCE_SIG_INTERFACE, SYSTEM_INACTIVITY_IND, self._on_inactivity_signal),
        ]

        self._handlers: Dict[type, Callable[[Any], Any]] = {
            WakeupFired: self._dispatch_wakeup,
            CheckRequested: self._dispatch_check_request,
            StartupComplete: lambda event: self.handle_startup_complete(),
            ActivityChanged: self._dispatch_activity,
            DiskUsageResult: self._dispatch_disk_usage,
            TransportConnected: lambda event: self.handle_transport_connect(),
            TransportDisconnected: lambda event: self.handle_transport_disconnect(),
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            self.logger.warning("Disk monitor already running")
            return

        self.logger.info("Disk monitor loaded")
        self._running = True
        self._dispatcher = create_logged_task(
            self._run(),
            logger=self.logger,
            context="DiskMonitorDispatcher",
        )
        self.scheduler.schedule_next_wakeup()

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        self.provider.cancel_all()
        await cancel_and_wait(self._dispatcher)
        self._dispatcher = None

        # Pending on-demand requests would otherwise wait forever
        while not self._queue.empty():
            event = self._queue.get_nowait()
            self._queue.task_done()
            if isinstance(event, CheckRequested) and event.reply and not event.reply.done():
                event.reply.cancel()

        self.logger.info("Disk monitor unloaded")

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.dispatch(event)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    # =========================================================================
    # Event intake
    # =========================================================================

    def post(self, event: Any) -> None:
        self._queue.put_nowait(event)

    def report_disk_usage(self, path: str, percent_used: int) -> None:
        """Result callback handed to the backend."""
        self.post(DiskUsageResult(path=path, percent_used=percent_used))

    async def request_check(self, sender: Optional[str] = None) -> Dict[str, Any]:
        """Queue an on-demand check and wait for its acknowledgment."""
        reply = asyncio.get_running_loop().create_future()
        self.post(CheckRequested(sender=sender, reply=reply))
        return await reply

    def _on_base_boot_done(self, payload: Dict[str, Any]) -> None:
        self.post(StartupComplete())

    def _on_inactivity_signal(self, payload: Dict[str, Any]) -> None:
        if "inactive" not in payload:
            raise KeyError("inactive")
        self.post(ActivityChanged(inactive=coerce_flag(payload["inactive"])))

    def dispatch(self, event: Any) -> None:
        """Handle one event; malformed or unknown events are logged and dropped."""
        handler = self._handlers.get(type(event))
        if handler is None:
            self.logger.warning("Discarding unknown event %r", event)
            return

        try:
            handler(event)
        except (TypeError, ValueError) as e:
            self.logger.warning("Discarding malformed %s %s: %s", type(event).__name__, event_payload(event), e)
        except Exception:
            self.logger.exception("Error handling %s", type(event).__name__)

    def _dispatch_wakeup(self, event: WakeupFired) -> None:
        self.handle_wakeup(event.generation, event.tag)

    def _dispatch_check_request(self, event: CheckRequested) -> None:
        try:
            self.handle_check_request(event.sender)
        finally:
            if event.reply is not None and not event.reply.done():
                event.reply.set_result({})

    def _dispatch_activity(self, event: ActivityChanged) -> None:
        self.handle_activity_changed(coerce_flag(event.inactive))

    def _dispatch_disk_usage(self, event: DiskUsageResult) -> None:
        path, percent_used = coerce_usage(event.path, event.percent_used)
        self.handle_disk_usage_result(path, percent_used)

    # =========================================================================
    # Handlers
    # =========================================================================

    def handle_check_request(self, sender: Optional[str] = None) -> Dict[str, Any]:
        self.logger.notice("Check request received from %s", sender or UNKNOWN_SENDER)
        self.executor.perform_check()
        return {}

    def handle_startup_complete(self) -> None:
        self.logger.debug("%s received", BASE_BOOT_DONE)
        self.state.mark_ready()

    def handle_activity_changed(self, inactive: bool) -> bool:
        return self.gate.handle_inactivity(inactive)

    def handle_wakeup(self, generation: int, tag: str = "diskmonitor") -> bool:
        if not self.scheduler.is_current(generation, tag):
            self.logger.debug("Ignoring superseded wake-up (generation %d)", generation)
            return False

        self.executor.perform_check()
        self.scheduler.schedule_next_wakeup()
        return True

    def handle_disk_usage_result(self, path: str, percent_used: int) -> None:
        self.bus.emit_signal(
            DISKMONITOR_SIG_INTERFACE,
            DISK_SPACE_CHANGE_IND,
            {"path": path, "percent_used": percent_used},
        )

    def handle_transport_connect(self) -> None:
        self.logger.debug("Transport connected")
        if not self.methods_bound:
            self.bus.bind_methods(DISKMONITOR_REQ_INTERFACE, self._methods)
            self.methods_bound = True
        if not self.signals_bound:
            self.bus.bind_signals(self._signals)
            self.signals_bound = True

    def handle_transport_disconnect(self) -> None:
        self.logger.debug("Transport disconnected")
        if self.methods_bound:
            self.bus.unbind_methods(DISKMONITOR_REQ_INTERFACE, self._methods)
            self.methods_bound = False
        if self.signals_bound:
            self.bus.unbind_signals(self._signals)
            self.signals_bound = False

    # =========================================================================
    # Introspection
    # =========================================================================

    def snapshot(self) -> Dict[str, Any]:
        return {
            **self.state.to_dict(),
            "next_interval": self.scheduler.next_interval(),
            "schedule_generation": self.scheduler.generation,
            "checks_run": self.executor.checks_run,
            "methods_bound": self.methods_bound,
            "signals_bound": self.signals_bound,
            "pending_events": self._queue.qsize(),
            "running": self._running,
        }
