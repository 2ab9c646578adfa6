"""Receiver side: collect captured records and write the reassembled file"""

import asyncio
import functools
from pathlib import Path
from typing import Optional, Union
import logging

import aiofiles

from ..config.settings import TransferConfig
from ..transfer.admission import check_free_space
from ..transfer.buffer import ReceiveBuffer
from ..transfer.codec import DecodedFile, decode
from ..transfer.errors import ErrorKind, TransferError
from ..transfer.progress import TransferProgress, TransferStatus

logger = logging.getLogger(__name__)


class FileReceiver:
    """Owns one ReceiveBuffer and turns a complete record set into a file"""

    def __init__(self, output_dir: Path, config: Optional[TransferConfig] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or TransferConfig()
        self.buffer = ReceiveBuffer()
        self._complete = asyncio.Event()

    def feed(self, text: Union[str, bytes]) -> bool:
        """
        Hand one captured record to the buffer.
        Returns True once the buffer holds a complete transfer.
        """
        try:
            stored = self.buffer.append(text.strip())
        except TransferError as e:
            logger.warning(f"Dropped captured record: {e}")
            raise

        if stored and self.buffer.header is not None:
            logger.debug(
                f"{self.buffer.received_count}/{self.buffer.header.total_chunks} chunks received"
            )

        if self.buffer.is_complete():
            self._complete.set()
            return True
        return False

    async def wait_complete(self, timeout: Optional[float] = None):
        """Wait for a complete record set; TRANSFER_TIMEOUT when the wait runs out"""
        if timeout is None:
            timeout = self.config.receive_timeout
        try:
            await asyncio.wait_for(self._complete.wait(), timeout)
        except asyncio.TimeoutError:
            header = self.buffer.header
            raise TransferError(
                ErrorKind.TRANSFER_TIMEOUT, f"No complete transfer after {timeout}s",
                timeout=timeout,
                expected=header.total_chunks if header else None,
                actual=self.buffer.received_count,
                missing=self.buffer.missing(),
                missing_count=header.total_chunks - self.buffer.received_count if header else None,
            ) from None

    async def reconstruct(self, fallback_name: str = "received_file") -> Path:
        """
        Decode the buffered records and write the file into output_dir.
        The buffer is only cleared after a successful decode.
        """
        records = self.buffer.snapshot()
        loop = asyncio.get_running_loop()
        decoded: DecodedFile = await loop.run_in_executor(
            None, functools.partial(decode, records, fallback_name)
        )

        check_free_space(self.output_dir, decoded.size, self.config.admission.min_free_space)

        target = self._target_path(decoded.name or fallback_name)
        async with aiofiles.open(target, 'wb') as f:
            await f.write(decoded.data)

        self.reset()
        logger.info(f"Saved {target} ({decoded.size} bytes)")
        return target

    async def receive(self, fallback_name: str = "received_file",
                      timeout: Optional[float] = None) -> Path:
        await self.wait_complete(timeout)
        return await self.reconstruct(fallback_name)

    def reset(self):
        self.buffer.reset()
        self._complete.clear()

    def progress(self) -> TransferProgress:
        header = self.buffer.header
        if self.buffer.is_complete():
            status = TransferStatus.COMPLETED
        elif header is None and not self.buffer.received_count:
            status = TransferStatus.IDLE
        else:
            status = TransferStatus.TRANSFERRING
        return TransferProgress(
            file_name=header.name if header else "",
            total_chunks=header.total_chunks if header else 0,
            completed_chunks=self.buffer.received_count,
            status=status,
        )

    def _target_path(self, name: str) -> Path:
        # Never let a received name escape output_dir
        safe_name = Path(name).name or "received_file"
        target = self.output_dir / safe_name
        counter = 1
        while target.exists():
            target = self.output_dir / f"{Path(safe_name).stem}_{counter}{Path(safe_name).suffix}"
            counter += 1
        return target
