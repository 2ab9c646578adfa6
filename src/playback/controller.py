"""
Cyclic playback of an encoded record sequence.

The controller walks the sequence one record per tick and hands each record
to an external renderer. Automatic (timer) and manual (next/previous)
advancement are mutually exclusive: manual stepping is only allowed while
paused, and every re-arm invalidates the previous timer first.
"""

from enum import Enum
from typing import Callable, List, Optional, Sequence
import logging

from ..transfer.records import Record
from .scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

Renderer = Callable[[Record, int, int], None]


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class EndOfCyclePolicy(Enum):
    """What happens when the index wraps back to 0"""
    LOOP = "loop"
    STOP = "stop"


class ResumePolicy(Enum):
    """Where playback continues after a pause"""
    PRESERVE = "preserve"
    RESTART = "restart"


class PlaybackStateError(RuntimeError):
    """Operation not allowed in the current playback state"""

    def __init__(self, operation: str, state: PlaybackState):
        super().__init__(f"Cannot {operation} while {state.value}")
        self.operation = operation
        self.state = state


class TransmissionController:
    """State machine over IDLE / PLAYING / PAUSED driving the renderer"""

    def __init__(self, renderer: Renderer,
                 scheduler: Optional[Scheduler] = None,
                 interval_ms: int = 500,
                 end_of_cycle: EndOfCyclePolicy = EndOfCyclePolicy.LOOP,
                 resume_policy: ResumePolicy = ResumePolicy.PRESERVE,
                 on_progress: Optional[Callable[[float], None]] = None,
                 on_cycle_complete: Optional[Callable[[], None]] = None):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")

        self.renderer = renderer
        self.scheduler = scheduler or AsyncioScheduler()
        self.interval_ms = interval_ms
        self.end_of_cycle = end_of_cycle
        self.resume_policy = resume_policy
        self.on_progress = on_progress
        self.on_cycle_complete = on_cycle_complete

        self.state = PlaybackState.IDLE
        self.sequence: List[Record] = []
        self.index = 0

        self._timer = None
        self._generation = 0

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def progress(self) -> float:
        return self.index / self.length if self.sequence else 0.0

    @property
    def current(self) -> Optional[Record]:
        return self.sequence[self.index] if self.sequence else None

    def load(self, records: Sequence[Record]):
        """Set the sequence to play; only valid while idle"""
        if self.state != PlaybackState.IDLE:
            raise PlaybackStateError("load", self.state)
        if not records:
            raise ValueError("Cannot load an empty record sequence")

        self.sequence = list(records)
        self.index = 0
        logger.info(f"Loaded {self.length} records")

    def start(self):
        """IDLE or PAUSED -> PLAYING"""
        if self.state == PlaybackState.PLAYING:
            raise PlaybackStateError("start", self.state)
        if not self.sequence:
            raise PlaybackStateError("start without a loaded sequence", self.state)

        if self.state == PlaybackState.PAUSED and self.resume_policy == ResumePolicy.RESTART:
            self.index = 0

        self.state = PlaybackState.PLAYING
        self._emit()
        self._arm()
        logger.debug(f"Playback started at {self.index}/{self.length}")

    def resume(self):
        """PAUSED -> PLAYING"""
        if self.state != PlaybackState.PAUSED:
            raise PlaybackStateError("resume", self.state)
        self.start()

    def pause(self):
        """PLAYING -> PAUSED, keeping the current index"""
        if self.state != PlaybackState.PLAYING:
            raise PlaybackStateError("pause", self.state)
        self._disarm()
        self.state = PlaybackState.PAUSED
        logger.debug(f"Playback paused at {self.index}/{self.length}")

    def set_interval(self, interval_ms: int):
        """Change the cadence; re-arms immediately while playing"""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.interval_ms = interval_ms
        if self.state == PlaybackState.PLAYING:
            self._disarm()
            self._arm()
        logger.debug(f"Interval set to {interval_ms}ms")

    def next(self):
        self._step(1, "step forward")

    def previous(self):
        self._step(-1, "step back")

    def stop(self):
        """Any state -> IDLE; clears the sequence"""
        self._disarm()
        self.state = PlaybackState.IDLE
        self.sequence = []
        self.index = 0
        logger.debug("Playback stopped")

    def _step(self, delta: int, operation: str):
        if self.state != PlaybackState.PAUSED:
            raise PlaybackStateError(operation, self.state)
        self.index = (self.index + delta) % self.length
        self._emit()

    def _tick(self, generation: int):
        if generation != self._generation or self.state != PlaybackState.PLAYING:
            return

        self.index = (self.index + 1) % self.length

        if self.index == 0 and self.end_of_cycle == EndOfCyclePolicy.STOP:
            self._disarm()
            self.state = PlaybackState.IDLE
            logger.info(f"One full pass over {self.length} records complete")
            if self.on_progress:
                self.on_progress(1.0)
            if self.on_cycle_complete:
                self.on_cycle_complete()
            return

        self._emit()

    def _emit(self):
        self.renderer(self.sequence[self.index], self.index, self.length)
        if self.on_progress:
            self.on_progress(self.progress)

    def _arm(self):
        self._generation += 1
        generation = self._generation
        self._timer = self.scheduler.arm(
            self.interval_ms / 1000.0, lambda: self._tick(generation)
        )

    def _disarm(self):
        # Bump the generation so a callback already queued becomes a no-op
        self._generation += 1
        if self._timer is not None:
            self.scheduler.cancel(self._timer)
            self._timer = None
