"""Cancellable one-shot callbacks for the deferred advance.

The session never owns a timer thread. It asks a ``Scheduler`` for a
handle and keeps that handle in its own state, so cancelling is an explicit
call on a known object.

Implementations:
    - ManualScheduler: virtual millisecond clock driven by ``advance()``;
      used by tests and by the replay CLI
    - AsyncioScheduler: ``loop.call_later`` on the host's event loop
"""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callback) -> Any:
        """Run callback once after delay_ms; return a cancellable handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle; cancelling a fired or cancelled handle is a no-op."""
        ...


class ManualScheduler:
    """Virtual-clock scheduler.

    Callbacks fire in due-time order (ties in scheduling order) when
    ``advance()`` moves the clock past them. Callbacks scheduled while
    advancing fire in the same call if they fall due.
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: List[Tuple[int, int, Callback]] = []
        self._seq = itertools.count()
        self._cancelled: set = set()

    def call_later(self, delay_ms: int, callback: Callback) -> int:
        handle = next(self._seq)
        heapq.heappush(self._queue, (self.now_ms + max(0, int(delay_ms)), handle, callback))
        return handle

    def cancel(self, handle: int) -> None:
        if any(h == handle for _, h, _ in self._queue):
            self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet fired or cancelled callbacks."""
        return sum(1 for _, h, _ in self._queue if h not in self._cancelled)

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing due callbacks; return how many fired."""
        if ms < 0:
            raise ValueError(f"Cannot move the clock backwards ({ms} ms)")
        target = self.now_ms + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self.now_ms = due
            callback()
            fired += 1
        self.now_ms = target
        return fired


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop (single-threaded hosts)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: int, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0, delay_ms) / 1000.0, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
