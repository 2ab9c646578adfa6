"""Sender side: admit, encode and play back a file"""

import asyncio
import functools
from pathlib import Path
from typing import List, Optional
import logging

import aiofiles

from ..config.settings import TransferConfig
from ..playback.controller import PlaybackState, Renderer, TransmissionController
from ..playback.scheduler import Scheduler
from ..transfer.admission import admit_file
from ..transfer.codec import encode
from ..transfer.progress import TransferProgress, TransferStatus
from ..transfer.records import HeaderRecord, Record

logger = logging.getLogger(__name__)


class FileSender:
    """Prepares one file at a time and drives its playback"""

    def __init__(self, config: TransferConfig, renderer: Renderer,
                 scheduler: Optional[Scheduler] = None):
        self.config = config
        self.records: List[Record] = []
        self.header: Optional[HeaderRecord] = None
        self._finished: Optional[asyncio.Event] = None

        playback = config.playback
        self.controller = TransmissionController(
            renderer,
            scheduler=scheduler,
            interval_ms=playback.interval_ms,
            end_of_cycle=playback.end_of_cycle_policy,
            resume_policy=playback.resume_policy,
            on_cycle_complete=self._on_cycle_complete,
        )

    async def prepare(self, path: Path) -> List[Record]:
        """Read and encode `path`, then load the records for playback"""
        path = Path(path)
        size = path.stat().st_size
        mime_type = admit_file(
            path, size,
            self.config.admission.max_file_size,
            self.config.admission.allowed_types,
        )

        async with aiofiles.open(path, 'rb') as f:
            data = await f.read()

        chunk_size = self.config.chunk_size_for(path.name, len(data))
        logger.info(f"Preparing {path.name}: {len(data)} bytes, chunk size {chunk_size}")

        # Hashing runs off the loop; the header only exists once it is done
        loop = asyncio.get_running_loop()
        records = await loop.run_in_executor(None, functools.partial(
            encode, data, chunk_size, self.config.include_hash,
            name=path.name,
            mime_type=mime_type,
            include_checksums=self.config.include_chunk_checksums,
        ))

        if self.controller.state != PlaybackState.IDLE:
            self.controller.stop()
        self.controller.load(records)

        self.records = records
        self.header = records[0]
        return records

    async def export(self, out_dir: Path) -> List[Path]:
        """Write each record's text to its own file for an external renderer"""
        if not self.records:
            raise ValueError("No file prepared")

        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for position, record in enumerate(self.records):
            target = out_dir / f"record_{position:05d}.json"
            async with aiofiles.open(target, 'w', encoding='utf-8') as f:
                await f.write(record.to_json())
            written.append(target)

        logger.info(f"Exported {len(written)} records to {out_dir}")
        return written

    async def transmit(self):
        """
        Play the prepared records and wait until playback ends: after one
        pass under the stop policy, or when stop() is called.
        """
        if not self.records:
            raise ValueError("No file prepared")

        self._finished = asyncio.Event()
        if self.controller.state == PlaybackState.IDLE and not self.controller.sequence:
            self.controller.load(self.records)
        self.controller.start()
        await self._finished.wait()

    def stop(self):
        self.controller.stop()
        if self._finished is not None:
            self._finished.set()

    def progress(self) -> TransferProgress:
        status = {
            PlaybackState.IDLE: TransferStatus.IDLE,
            PlaybackState.PLAYING: TransferStatus.TRANSFERRING,
            PlaybackState.PAUSED: TransferStatus.PAUSED,
        }[self.controller.state]
        return TransferProgress(
            file_name=self.header.name if self.header else "",
            total_chunks=self.controller.length,
            completed_chunks=self.controller.index,
            status=status,
        )

    def _on_cycle_complete(self):
        logger.info("Transmission pass complete")
        if self._finished is not None:
            self._finished.set()
