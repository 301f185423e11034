"""Thread based timers used by the polling orchestrator and the mode timers."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)


def _run_task(name: str, fn: Callable[[], None]) -> None:
    try:
        fn()
    except Exception:
        # a failing tick must never stop the timer; the next tick is the retry
        LOGGER.exception("Scheduled task %s failed", name)


class RepeatingTimer(threading.Thread):
    """Call ``fn`` every ``interval`` seconds until cancelled.

    With ``immediate`` the first call happens right away instead of after the
    first interval.
    """

    def __init__(self, interval: float, fn: Callable[[], None], name: str, immediate: bool = False):
        super().__init__(name=name, daemon=True)
        self.interval = interval
        self.fn = fn
        self.immediate = immediate
        self._stop_event = threading.Event()

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        if self.immediate and self.active:
            _run_task(self.name, self.fn)
        while not self._stop_event.wait(self.interval):
            _run_task(self.name, self.fn)


class OneShotTimer:
    """Call ``fn`` once after ``delay`` seconds unless cancelled first"""

    def __init__(self, delay: float, fn: Callable[[], None], name: str):
        self.name = name
        self._fired = threading.Event()
        self._timer = threading.Timer(delay, self._fire, args=(fn,))
        self._timer.name = name
        self._timer.daemon = True

    def _fire(self, fn: Callable[[], None]) -> None:
        self._fired.set()
        _run_task(self.name, fn)

    @property
    def active(self) -> bool:
        return not self._fired.is_set() and not self._timer.finished.is_set()

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadScheduler:
    """Creates timers backed by daemon threads"""

    def call_every(self, interval: float, fn: Callable[[], None], name: Optional[str] = None,
                   immediate: bool = False) -> RepeatingTimer:
        timer = RepeatingTimer(interval, fn, name or getattr(fn, '__name__', 'task'), immediate=immediate)
        timer.start()
        LOGGER.debug("Started repeating task %s every %ss", timer.name, interval)
        return timer

    def call_later(self, delay: float, fn: Callable[[], None], name: Optional[str] = None) -> OneShotTimer:
        timer = OneShotTimer(delay, fn, name or getattr(fn, '__name__', 'task'))
        timer.start()
        LOGGER.debug("Scheduled %s in %ss", timer.name, delay)
        return timer
