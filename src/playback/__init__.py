from .controller import (
    TransmissionController,
    PlaybackState,
    EndOfCyclePolicy,
    ResumePolicy,
    PlaybackStateError
)
from .scheduler import Scheduler, AsyncioScheduler, RepeatingTimer

__all__ = [
    'TransmissionController',
    'PlaybackState',
    'EndOfCyclePolicy',
    'ResumePolicy',
    'PlaybackStateError',
    'Scheduler',
    'AsyncioScheduler',
    'RepeatingTimer'
]
