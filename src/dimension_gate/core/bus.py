"""
Dimension Gate Event Bus

Access decisions and dimension state changes are published here as
immutable facts, whether they came from an actor, a command or a schedule.
The notifier, broadcaster and any audit tooling subscribe to the bus; the
core never renders anything itself.

=============================================================================
PRINCIPLES
=============================================================================

1. THE BUS RECORDS FACTS
   - Events are things that HAPPENED ("dimension:closed", not "close it")
   - The bus does not decide outcomes, it records them

2. EVENTS ARE IMMUTABLE
   - Once emitted, an event cannot be changed
   - Handlers receive events, they cannot modify them

3. EMIT IS SYNCHRONOUS
   - Sequence assignment and log commit happen under the bus lock
   - Handlers run on the emitting thread after the commit

4. HANDLERS CANNOT BREAK THE EMITTER
   - Handler exceptions are logged and swallowed
   - A broken notifier never turns an access decision into a failure

5. ONE BUS PER GATE
   - The bus is an owned object injected into the gate and scheduler,
     not a module-level singleton, so each test gets a fresh one

=============================================================================
USAGE
=============================================================================

    from dimension_gate.core.bus import GateBus
    from dimension_gate.core.events import Events

    bus = GateBus()

    def on_denied(event):
        print(f"{event.detail['actor']} was turned away")

    unsubscribe = bus.on(Events.ACCESS_DENIED, on_denied)

    # Later: stop listening
    unsubscribe()

=============================================================================
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A handler takes an event and returns nothing
EventHandler = Callable[["GateEvent"], None]

# An unsubscribe function takes no args and returns nothing
Unsubscribe = Callable[[], None]


# =============================================================================
# EVENT METADATA
# =============================================================================


@dataclass(frozen=True)
class EventMetadata:
    """
    Metadata attached to every event.

    Attributes:
        timestamp: Unix epoch milliseconds (UTC). Wall clock time of emission.
                   Used for display, NOT for ordering.
        source: Name of the component that emitted this event.
                Examples: "gate", "scheduler", "command"
        sequence: Monotonically increasing integer. The only reliable way to
                  determine event order across threads.
    """

    timestamp: int
    source: str
    sequence: int

    @staticmethod
    def create(source: str, sequence: int) -> EventMetadata:
        """Create metadata stamped with the current UTC time."""
        now_ms = int(datetime.now(UTC).timestamp() * 1000)
        return EventMetadata(timestamp=now_ms, source=source, sequence=sequence)


# =============================================================================
# GATE EVENT
# =============================================================================


@dataclass(frozen=True)
class GateEvent:
    """
    A single event on the bus.

    Attributes:
        type: The event type string in "domain:action" format.
              Examples: "access:denied", "dimension:opened"
        detail: The event payload. Treat as immutable.
        _meta: Event metadata (timestamp, source, sequence).
    """

    type: str
    detail: dict = field(default_factory=dict)
    _meta: EventMetadata | None = field(default=None)

    def __str__(self) -> str:
        if self._meta:
            return (
                f"GateEvent(type='{self.type}', "
                f"source='{self._meta.source}', "
                f"seq={self._meta.sequence})"
            )
        return f"GateEvent(type='{self.type}')"

    @property
    def meta(self) -> EventMetadata | None:
        """Public accessor for event metadata."""
        return self._meta


# =============================================================================
# GATE BUS
# =============================================================================


class GateBus:
    """
    Thread-safe event bus for gate outcomes.

    Access decisions arrive from many threads at once and scheduled jobs fire
    on their own timer threads, so unlike a single-threaded game loop this
    bus guards its sequence counter, log and handler table with a lock.
    Handlers are invoked outside the lock on a snapshot of the subscriber
    list, so a handler may itself emit or unsubscribe.

    Key Methods:
    - emit(): Record an event (synchronous, returns committed event)
    - on(): Subscribe to an event type (returns unsubscribe function)
    - once(): Subscribe for a single event only
    - get_event_log(): Retrieve event history (for debugging/audit)

    Args:
        max_log_size: Bound on the in-memory event history.
    """

    def __init__(self, *, max_log_size: int = 10_000) -> None:
        # Maps event_type -> handlers, in registration order
        self._handlers: dict[str, list[EventHandler]] = {}
        self._event_log: deque[GateEvent] = deque(maxlen=max_log_size)
        self._sequence: int = 0
        self._lock = threading.Lock()

    # =========================================================================
    # EMIT
    # =========================================================================

    def emit(
        self, event_type: str, detail: dict[str, Any] | None = None, source: str = "gate"
    ) -> GateEvent:
        """
        Emit an event to the bus.

        When this returns, the event has a sequence number, is in the log,
        and every handler subscribed at commit time has been called.

        Args:
            event_type: The type of event (e.g., "access:denied")
            detail: The event payload. Optional, defaults to empty dict.
            source: Which component is emitting. Defaults to "gate".

        Returns:
            The committed GateEvent.
        """
        with self._lock:
            self._sequence += 1
            event = GateEvent(
                type=event_type,
                detail=detail if detail is not None else {},
                _meta=EventMetadata.create(source, self._sequence),
            )
            self._event_log.append(event)
            handlers = list(self._handlers.get(event_type, ()))

        logger.debug("EMIT [%d]: %s from %s", event.meta.sequence, event.type, source)

        self._notify_handlers(event, handlers)
        return event

    def _notify_handlers(self, event: GateEvent, handlers: list[EventHandler]) -> None:
        """Call each handler in registration order; log and continue on error."""
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # The event is committed regardless of handler errors
                logger.error(f"Handler error for '{event.type}': {e}", exc_info=True)

    # =========================================================================
    # SUBSCRIBE
    # =========================================================================

    def on(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for (e.g., "dimension:opened")
            handler: Function called with the GateEvent as its only argument.

        Returns:
            An unsubscribe function. Call it to stop receiving events.
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            count = len(self._handlers[event_type])

        logger.debug("SUBSCRIBE: '%s' (total handlers: %d)", event_type, count)

        def unsubscribe() -> None:
            """Remove this handler from the subscription list."""
            with self._lock:
                handlers = self._handlers.get(event_type)
                if handlers and handler in handlers:
                    handlers.remove(handler)
            logger.debug("UNSUBSCRIBE: '%s'", event_type)

        return unsubscribe

    def once(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe to an event type for a single event only.

        Args:
            event_type: The event type to listen for
            handler: Function to call (once)

        Returns:
            An unsubscribe function (in case you want to cancel early)
        """
        unsub: Unsubscribe | None = None
        fired = threading.Event()

        def one_time_wrapper(event: GateEvent) -> None:
            # Two threads may both see the wrapper in their snapshot
            if fired.is_set():
                return
            fired.set()
            try:
                handler(event)
            finally:
                if unsub is not None:
                    unsub()

        unsub = self.on(event_type, one_time_wrapper)
        return unsub

    # =========================================================================
    # EVENT LOG ACCESS
    # =========================================================================

    def get_event_log(
        self, limit: int | None = None, *, event_type: str | None = None
    ) -> list[GateEvent]:
        """
        Get events from the log, oldest first.

        Args:
            limit: Maximum number of events to return (from the end).
                   None means return all events in the log.
            event_type: Only return events of this type.
        """
        with self._lock:
            events = list(self._event_log)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if limit is not None:
            return events[-limit:]
        return events

    def get_sequence(self) -> int:
        """Return the last assigned sequence number."""
        with self._lock:
            return self._sequence

    def get_handler_count(self, event_type: str) -> int:
        """Return the number of handlers subscribed to an event type."""
        with self._lock:
            return len(self._handlers.get(event_type, ()))

    def clear_event_log(self) -> None:
        """Erase event history. Sequence numbers keep counting."""
        with self._lock:
            self._event_log.clear()
