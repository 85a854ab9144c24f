"""GLib main-loop scheduler."""

from typing import Optional

from gi.repository import GLib

from bstlab.scheduler import TickCallback, TickScheduler


class GLibScheduler(TickScheduler):
    """TickScheduler backed by ``GLib.timeout_add``."""

    def __init__(self):
        self._source_id: Optional[int] = None

    def start(self, interval_ms: int, callback: TickCallback):
        self.stop()
        source_id = None

        def _on_timeout() -> bool:
            if callback():
                return True
            if self._source_id == source_id:
                self._source_id = None
            return False

        source_id = GLib.timeout_add(interval_ms, _on_timeout)
        self._source_id = source_id

    def stop(self):
        if self._source_id:
            GLib.source_remove(self._source_id)
            self._source_id = None

    @property
    def is_running(self) -> bool:
        return self._source_id is not None
