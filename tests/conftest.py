"""Pytest configuration and fixtures"""

import pytest
import tempfile
import shutil
from pathlib import Path

from src.playback.scheduler import Scheduler


class ManualTimer:
    """Timer handle that only fires when the test says so"""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.active = True


class ManualScheduler(Scheduler):
    """Deterministic scheduler: tick() fires every active timer once"""

    def __init__(self):
        self.timers = []

    def arm(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    def cancel(self, handle):
        handle.active = False

    @property
    def active(self):
        return [t for t in self.timers if t.active]

    def tick(self, count=1):
        for _ in range(count):
            for timer in self.active:
                if timer.active:
                    timer.callback()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def inbox_dir():
    """Create temporary directory standing in for the capture inbox"""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def output_dir():
    """Create temporary directory for reconstructed files"""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)
