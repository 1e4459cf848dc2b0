"""Recurring background timer shared by the scheduler and metrics flush.

Each :class:`RecurringTimer` owns one daemon thread and one cancellation
:class:`threading.Event`. The thread sleeps on the event, so cancelling
wakes it immediately instead of waiting out the interval.

Cancellation contract:
    :meth:`RecurringTimer.cancel` sets the event and then joins the thread.
    When it returns the callback is not running and will never run again.
    The one exception is a timer cancelled from inside its own callback; the
    join is skipped there (a thread cannot join itself) but the loop exits as
    soon as the callback returns.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RecurringTimer:
    """Call ``callback`` after ``delay`` seconds, then every ``interval``.

    Args:
        name: Thread name, used in logs.
        callback: Zero-argument callable run on the timer thread.
        delay: Seconds before the first call (``0`` fires immediately).
        interval: Seconds between calls. Must be positive.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], None],
        *,
        delay: float,
        interval: float,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay!r}")
        self.name = name
        self._callback = callback
        self._delay = delay
        self._interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self, timeout: float | None = None) -> None:
        """Stop the timer and wait for any in-flight callback to finish."""
        self._stopped.set()
        if threading.current_thread() is self._thread:
            return
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        # Event.wait returns True once cancelled
        if self._stopped.wait(self._delay):
            return
        while not self._stopped.is_set():
            try:
                self._callback()
            except Exception:
                logger.exception("Timer %r callback failed", self.name)
            if self._stopped.wait(self._interval):
                return
