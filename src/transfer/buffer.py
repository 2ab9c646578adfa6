"""Receive-side accumulator for captured records"""

from typing import Dict, List, Optional, Union
import logging

from .codec import MISSING_REPORT_LIMIT, missing_indices
from .errors import TransferError
from .records import DataRecord, HeaderRecord, Record, parse_record

logger = logging.getLogger(__name__)


class ReceiveBuffer:
    """
    Collects records from an unordered, possibly repeating capture stream.

    One header slot (first header wins) and an index -> DataRecord map
    (first write wins). Assumes a single transfer at a time: nothing in the
    wire format tells two concurrent sessions apart beyond total_chunks, so
    once a header is known only data records with the same total_chunks are
    kept.
    """

    def __init__(self):
        self.header: Optional[HeaderRecord] = None
        self.chunks: Dict[int, DataRecord] = {}

    def append(self, text: Union[str, bytes]) -> bool:
        """
        Parse and store one captured record.
        Returns True if stored, False if it repeats an existing slot or
        belongs to another transfer.
        Malformed input raises TransferError and leaves the buffer untouched.
        """
        try:
            record = parse_record(text)
        except TransferError as e:
            logger.debug(f"Rejected captured text: {e}")
            raise

        return self.add(record)

    def add(self, record: Record) -> bool:
        """Store an already parsed record"""
        if isinstance(record, HeaderRecord):
            if self.header is not None:
                logger.debug(f"Ignoring repeated header for {record.name}")
                return False
            self.header = record
            logger.info(
                f"Header received: {record.name} ({record.size} bytes, "
                f"{record.total_chunks} chunks)"
            )
            self._drop_foreign_chunks()
            return True

        if not self._belongs(record):
            logger.warning(
                f"Ignoring chunk {record.index}: total_chunks {record.total_chunks} "
                f"does not match header ({self.header.total_chunks})"
            )
            return False
        if record.index in self.chunks:
            return False
        self.chunks[record.index] = record
        logger.debug(f"Chunk {record.index} stored ({len(self.chunks)} total)")
        return True

    def _belongs(self, record: DataRecord) -> bool:
        # Parsing guarantees index < record.total_chunks
        return self.header is None or record.total_chunks == self.header.total_chunks

    def _drop_foreign_chunks(self):
        """Discard chunks captured before the header that belong to another transfer"""
        foreign = [i for i, record in self.chunks.items() if not self._belongs(record)]
        for index in foreign:
            del self.chunks[index]
        if foreign:
            logger.warning(f"Dropped {len(foreign)} chunks from another transfer")

    def is_complete(self) -> bool:
        return self.header is not None and len(self.chunks) == self.header.total_chunks

    @property
    def received_count(self) -> int:
        return len(self.chunks)

    @property
    def progress(self) -> float:
        """Fraction of data records received (0.0 to 1.0)"""
        if self.header is None:
            return 0.0
        if self.header.total_chunks == 0:
            return 1.0
        return min(len(self.chunks) / self.header.total_chunks, 1.0)

    def missing(self, limit: Optional[int] = MISSING_REPORT_LIMIT) -> List[int]:
        """
        Lowest indices not yet received, at most limit of them (None for all).
        Empty until a header arrives.
        """
        if self.header is None:
            return []
        return missing_indices(self.header.total_chunks, self.chunks, limit)

    def snapshot(self) -> List[Record]:
        """Header (if any) followed by data records in index order"""
        records: List[Record] = []
        if self.header is not None:
            records.append(self.header)
        records.extend(self.chunks[i] for i in sorted(self.chunks))
        return records

    def drain(self) -> List[Record]:
        """Hand all records over for decoding and clear the buffer"""
        records = self.snapshot()
        self.reset()
        return records

    def reset(self):
        self.header = None
        self.chunks = {}
