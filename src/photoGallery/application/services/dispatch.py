"""Hand completions from worker threads back to the consumer thread.

A dispatcher is any callable that accepts a zero-argument callback.  The
window and the coordinator never mutate their state from a future's done
callback directly; they post the mutation through a dispatcher instead.
"""

from __future__ import annotations

import logging
import queue
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]


def immediate_dispatcher(callback: Callable[[], None]) -> None:
    """Run *callback* on whichever thread completed the work.

    Safe because every component guards its own state with a lock; use
    :class:`QueueDispatcher` when mutations must happen on one thread.
    """

    callback()


class QueueDispatcher:
    """Collects callbacks until the consumer thread drains them.

    Plays the role of a UI event loop: worker threads post, the owning
    thread calls :meth:`drain` (or :meth:`process`) from its loop.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[Callable[[], None]]" = queue.SimpleQueue()

    def __call__(self, callback: Callable[[], None]) -> None:
        self._queue.put(callback)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, max_items: Optional[int] = None) -> int:
        """Run queued callbacks without blocking; return how many ran."""
        ran = 0
        while max_items is None or ran < max_items:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                break
            self._run(callback)
            ran += 1
        return ran

    def process(self, timeout: Optional[float] = None) -> int:
        """Block for the next callback, then drain whatever else is queued."""
        try:
            callback = self._queue.get(timeout=timeout)
        except queue.Empty:
            return 0
        self._run(callback)
        return 1 + self.drain()

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            LOGGER.exception("Dispatched callback %r failed", callback)
