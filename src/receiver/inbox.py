"""
Directory inbox as a capture source.

The optical capture tool drops each decoded barcode text into a directory,
one file per scan. A watchdog observer notices new or changed files and the
asyncio loop reads them and feeds the receiver.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Set
import logging

import aiofiles
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config.settings import RetryConfig
from ..transfer.errors import TransferError
from ..transfer.retry import retry_operation
from .receiver import FileReceiver

logger = logging.getLogger(__name__)


class _InboxHandler(FileSystemEventHandler):
    """Runs on the observer thread; only forwards paths to the loop"""

    def __init__(self, watcher: 'InboxWatcher'):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self.watcher.notify(Path(event.src_path))

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self.watcher.notify(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        if not event.is_directory:
            self.watcher.notify(Path(event.dest_path))


class InboxWatcher:
    """Feeds every file appearing in `directory` to a FileReceiver"""

    def __init__(self, directory: Path, receiver: FileReceiver,
                 retry: Optional[RetryConfig] = None):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.receiver = receiver
        self.retry = retry or RetryConfig()

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.observer: Optional[Observer] = None
        self._tasks: Set[asyncio.Task] = set()

    async def start(self):
        """
        Watch for new files, then ingest those already present.
        The observer runs before the scan so no file can land unseen; a file
        both scanned and notified is fed twice and deduplicated.
        """
        self.loop = asyncio.get_running_loop()

        self.observer = Observer()
        self.observer.schedule(_InboxHandler(self), str(self.directory), recursive=False)
        self.observer.start()
        logger.info(f"Watching {self.directory} for captured records")

        for path in self._existing_files():
            await self.ingest(path)

    def _existing_files(self) -> List[Path]:
        return sorted(path for path in self.directory.iterdir() if path.is_file())

    def stop(self):
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        for task in list(self._tasks):
            task.cancel()

    def notify(self, path: Path):
        """Thread-safe entry point for the observer"""
        if self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self._schedule, path)

    def _schedule(self, path: Path):
        task = self.loop.create_task(self.ingest(path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def ingest(self, path: Path) -> bool:
        """Read one captured file and feed it; returns True if stored text completed the set"""
        if path.name.startswith('.'):
            return False

        try:
            text = await retry_operation(
                lambda: self._read(path),
                max_attempts=self.retry.attempts,
                delay=self.retry.delay,
            )
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read {path}: {e}")
            return False

        if not text.strip():
            return False

        try:
            return self.receiver.feed(text)
        except TransferError as e:
            logger.warning(f"Ignoring {path.name}: {e}")
            return False

    async def _read(self, path: Path) -> str:
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            return await f.read()
