"""Cancellable periodic timers for playback"""

import asyncio
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Timer interface used by the transmission controller.
    arm() returns a handle; cancel(handle) guarantees the callback
    never fires again for that handle.
    """

    def arm(self, interval: float, callback: Callable[[], None]):
        raise NotImplementedError

    def cancel(self, handle):
        raise NotImplementedError


class RepeatingTimer:
    """Handle for a periodic asyncio timer"""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float,
                 callback: Callable[[], None]):
        self.loop = loop
        self.interval = interval
        self.callback = callback
        self.cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_later(interval, self._fire)

    def _fire(self):
        if self.cancelled:
            return
        # Re-arm first so the callback may cancel this timer
        self._handle = self.loop.call_later(self.interval, self._fire)
        self.callback()

    def cancel(self):
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler(Scheduler):
    """Scheduler backed by loop.call_later; must be used from the loop's thread"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop

    def arm(self, interval: float, callback: Callable[[], None]) -> RepeatingTimer:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        loop = self.loop or asyncio.get_running_loop()
        logger.debug(f"Arming timer every {interval:.3f}s")
        return RepeatingTimer(loop, interval, callback)

    def cancel(self, handle: RepeatingTimer):
        handle.cancel()
