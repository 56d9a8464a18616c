"""
Message Bus - in-process request/signal switchboard.

Components bind method tables (requests with a reply) and signal tables
(fire-and-forget notifications). Transports such as the HTTP API only ever
talk to the bus, so the monitor does not care how requests arrive.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .logging_utils import get_module_logger

DISKMONITOR_SERVICE = "com.nokia.diskmonitor"
DISKMONITOR_REQ_INTERFACE = "com.nokia.diskmonitor.request"
DISKMONITOR_SIG_INTERFACE = "com.nokia.diskmonitor.signal"
DISKMONITOR_REQ_PATH = "/com/nokia/diskmonitor/request"
DISKMONITOR_SIG_PATH = "/com/nokia/diskmonitor/signal"

REQ_CHECK = "req_check"
DISK_SPACE_CHANGE_IND = "disk_space_change_ind"

STARTUP_SIG_INTERFACE = "com.nokia.startup.signal"
BASE_BOOT_DONE = "base_boot_done"
MCE_SIG_INTERFACE = "com.nokia.mce.signal"
SYSTEM_INACTIVITY_IND = "system_inactivity_ind"

MethodHandler = Callable[[Optional[str]], Awaitable[Dict[str, Any]]]
SignalHandler = Callable[[Dict[str, Any]], None]
Subscriber = Callable[[str, str, Dict[str, Any]], None]


class UnknownMethodError(LookupError):
    """Raised when a request targets a method nobody has bound."""


@dataclass(frozen=True)
class MethodBinding:
    member: str
    handler: MethodHandler


@dataclass(frozen=True)
class SignalBinding:
    interface: str
    member: str
    handler: SignalHandler


class MessageBus:

    def __init__(self):
        self.logger = get_module_logger("MessageBus")
        self._methods: Dict[Tuple[str, str], MethodHandler] = {}
        self._signals: Dict[Tuple[str, str], List[SignalHandler]] = {}
        self._subscribers: List[Subscriber] = []

    # =========================================================================
    # Bindings
    # =========================================================================

    def bind_methods(self, interface: str, methods: Sequence[MethodBinding]) -> None:
        for binding in methods:
            key = (interface, binding.member)
            if key in self._methods:
                self.logger.warning("Method %s.%s already bound, replacing", interface, binding.member)
            self._methods[key] = binding.handler
        self.logger.debug("Bound %d method(s) on %s", len(methods), interface)

    def unbind_methods(self, interface: str, methods: Sequence[MethodBinding]) -> None:
        for binding in methods:
            self._methods.pop((interface, binding.member), None)
        self.logger.debug("Unbound %d method(s) on %s", len(methods), interface)

    def bind_signals(self, signals: Sequence[SignalBinding]) -> None:
        for binding in signals:
            self._signals.setdefault((binding.interface, binding.member), []).append(binding.handler)
        self.logger.debug("Bound %d signal handler(s)", len(signals))

    def unbind_signals(self, signals: Sequence[SignalBinding]) -> None:
        for binding in signals:
            key = (binding.interface, binding.member)
            handlers = self._signals.get(key)
            if not handlers:
                continue
            try:
                handlers.remove(binding.handler)
            except ValueError:
                continue
            if not handlers:
                del self._signals[key]
        self.logger.debug("Unbound %d signal handler(s)", len(signals))

    def has_method(self, interface: str, member: str) -> bool:
        return (interface, member) in self._methods

    def has_signal(self, interface: str, member: str) -> bool:
        return bool(self._signals.get((interface, member)))

    # =========================================================================
    # Inbound traffic
    # =========================================================================

    async def call_method(self, interface: str, member: str, sender: Optional[str] = None) -> Dict[str, Any]:
        handler = self._methods.get((interface, member))
        if handler is None:
            raise UnknownMethodError(f"{interface}.{member} is not bound")
        return await handler(sender)

    def deliver_signal(self, interface: str, member: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """Hand a signal to its bound handlers. Returns how many received it."""
        handlers = list(self._signals.get((interface, member), ()))
        if not handlers:
            self.logger.debug("No handler for signal %s.%s, ignoring", interface, member)
            return 0

        for handler in handlers:
            handler(dict(payload or {}))
        return len(handlers)

    # =========================================================================
    # Outbound signals
    # =========================================================================

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register an outbound signal listener. Returns an unsubscribe callable."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit_signal(self, interface: str, member: str, payload: Dict[str, Any]) -> int:
        """Broadcast a signal to every subscriber. Returns the delivery count."""
        delivered = 0
        for subscriber in list(self._subscribers):
            try:
                subscriber(interface, member, dict(payload))
                delivered += 1
            except Exception as e:
                self.logger.error("Subscriber failed on %s.%s: %s", interface, member, e)
        return delivered
