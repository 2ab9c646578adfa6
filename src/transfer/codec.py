"""Chunk codec: file bytes <-> ordered record sequence"""

import base64
import binascii
import itertools
import time
from dataclasses import dataclass
from typing import Container, Dict, Iterable, List, Optional, Union
import logging

from cryptography.hazmat.primitives import constant_time, hashes

from .errors import ErrorKind, TransferError
from .records import DataRecord, HeaderRecord, Record, parse_record

logger = logging.getLogger(__name__)

# Upper bound on missing indices carried in error details
MISSING_REPORT_LIMIT = 32


@dataclass
class DecodedFile:
    """Reassembled file bytes tagged with their name"""
    name: str
    data: bytes
    mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


def content_hash(data: bytes) -> str:
    """SHA-256 over the complete buffer, lowercase hex"""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def _hashes_match(expected: str, actual: str) -> bool:
    return constant_time.bytes_eq(expected.encode('ascii'), actual.encode('ascii'))


def total_chunks_for(size: int, chunk_size: int) -> int:
    return (size + chunk_size - 1) // chunk_size


def missing_indices(total: int, present: Container[int],
                    limit: Optional[int] = MISSING_REPORT_LIMIT) -> List[int]:
    """
    Lowest indices below total that are not present, at most limit of them.
    Stops scanning at the limit, so a huge total from a bad header stays cheap.
    """
    absent = (i for i in range(total) if i not in present)
    return list(itertools.islice(absent, limit))


def encode(data: bytes, chunk_size: int, include_hash: bool = True, *,
           name: str, mime_type: Optional[str] = None,
           include_checksums: bool = False,
           timestamp: Optional[int] = None) -> List[Record]:
    """
    Split `data` into base64 data records behind a single header.

    The hash (when requested) is computed over the whole buffer before the
    header is built. Output order is header first, then ascending index.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not name:
        raise ValueError("name is required")

    total = total_chunks_for(len(data), chunk_size)
    file_hash = content_hash(data) if include_hash else None

    header = HeaderRecord(
        name=name,
        size=len(data),
        total_chunks=total,
        timestamp=int(time.time() * 1000) if timestamp is None else timestamp,
        hash=file_hash,
        type=mime_type,
    )
    records: List[Record] = [header]

    for index in range(total):
        window = data[index * chunk_size:(index + 1) * chunk_size]
        records.append(DataRecord(
            index=index,
            data=base64.b64encode(window).decode('ascii'),
            total_chunks=total,
            name=name,
            checksum=content_hash(window) if include_checksums else None,
        ))

    logger.debug(f"Encoded {name}: {len(data)} bytes into {total} chunks of <= {chunk_size}")
    return records


def decode(records: Iterable[Union[str, Dict, Record]],
           fallback_name: str = "received_file") -> DecodedFile:
    """
    Reassemble a file from an unordered, possibly duplicated record set.

    Raises TransferError with kind INVALID_HEADER, INCOMPLETE_CHUNKS or
    FILE_INTEGRITY.
    """
    header: Optional[HeaderRecord] = None
    data_records: List[DataRecord] = []

    for raw in records:
        try:
            record = parse_record(raw)
        except TransferError as e:
            logger.warning(f"Skipping malformed record: {e}")
            continue

        if isinstance(record, HeaderRecord):
            if header is None:
                header = record
            elif record != header:
                logger.debug(f"Ignoring extra header for {record.name}")
        else:
            data_records.append(record)

    if header is None:
        raise TransferError(ErrorKind.INVALID_HEADER, "No valid file header found")

    chunks: Dict[int, DataRecord] = {}
    for record in data_records:
        if record.total_chunks != header.total_chunks:
            logger.warning(
                f"Skipping chunk {record.index}: total_chunks {record.total_chunks} "
                f"does not match header ({header.total_chunks})"
            )
            continue
        # First seen wins; later duplicates are not compared
        chunks.setdefault(record.index, record)

    expected = header.total_chunks
    # Every stored index is below expected, so a full count means full coverage
    if len(chunks) != expected:
        missing = missing_indices(expected, chunks)
        first = f"; chunk {missing[0]} missing" if missing else ""
        raise TransferError(
            ErrorKind.INCOMPLETE_CHUNKS,
            f"Incomplete chunks received. Expected {expected}, got {len(chunks)}{first}",
            expected=expected, actual=len(chunks),
            missing=missing, missing_count=expected - len(chunks)
        )

    parts = []
    for index in range(expected):
        record = chunks[index]
        try:
            window = base64.b64decode(record.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransferError(
                ErrorKind.FILE_INTEGRITY, f"Chunk {index} payload is not valid base64",
                index=index
            ) from e
        if record.checksum is not None and record.checksum != content_hash(window):
            raise TransferError(
                ErrorKind.FILE_INTEGRITY, f"Chunk {index} checksum mismatch", index=index
            )
        parts.append(window)

    data = b"".join(parts)

    if len(data) != header.size:
        raise TransferError(
            ErrorKind.FILE_INTEGRITY, "Reassembled size does not match header",
            expected=header.size, actual=len(data)
        )

    if header.hash is not None:
        actual_hash = content_hash(data)
        if not _hashes_match(header.hash, actual_hash):
            raise TransferError(
                ErrorKind.FILE_INTEGRITY, "File integrity check failed",
                expected=header.hash, actual=actual_hash
            )

    name = header.name or fallback_name
    logger.info(f"Reassembled {name} ({len(data)} bytes, {expected} chunks)")
    return DecodedFile(name=name, data=data, mime_type=header.type)
