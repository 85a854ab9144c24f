"""Tick schedulers that drive the rotation animation."""

from typing import Callable, Optional

TickCallback = Callable[[], bool]


class TickScheduler:
    """Runs a callback at a fixed interval until it returns False or stop() is called."""

    def start(self, interval_ms: int, callback: TickCallback):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        raise NotImplementedError


class ManualScheduler(TickScheduler):
    """Scheduler advanced explicitly by the caller.

    Used for headless runs and tests: nothing happens until ``tick()`` is
    called.
    """

    def __init__(self):
        self.interval_ms: Optional[int] = None
        self.ticks = 0
        self._callback: Optional[TickCallback] = None

    def start(self, interval_ms: int, callback: TickCallback):
        self.interval_ms = interval_ms
        self._callback = callback

    def stop(self):
        self._callback = None

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def tick(self) -> bool:
        """Fire one tick. Returns False when nothing is scheduled."""
        callback = self._callback
        if callback is None:
            return False
        self.ticks += 1
        if not callback() and self._callback is callback:
            self._callback = None
        return True

    def run_until_idle(self, max_ticks: int = 10000) -> int:
        """Tick until no callback remains. Returns the number of ticks fired."""
        fired = 0
        while self.is_running:
            if fired >= max_ticks:
                raise RuntimeError(f"Scheduler still running after {max_ticks} ticks")
            self.tick()
            fired += 1
        return fired
