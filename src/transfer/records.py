"""Wire records: one header plus one data record per byte window"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
import logging

from .errors import ErrorKind, TransferError

logger = logging.getLogger(__name__)

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop optional fields that are absent"""
    return {k: v for k, v in fields.items() if v is not None}


@dataclass(frozen=True)
class HeaderRecord:
    """Whole-file metadata, exactly one per transfer"""
    name: str
    size: int
    total_chunks: int
    timestamp: int
    hash: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'name': self.name,
            'size': self.size,
            'total_chunks': self.total_chunks,
            'hash': self.hash,
            'timestamp': self.timestamp,
            'type': self.type,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)


@dataclass(frozen=True)
class DataRecord:
    """One base64-encoded byte window of the source file"""
    index: int
    data: str
    total_chunks: int
    name: Optional[str] = None
    checksum: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'index': self.index,
            'data': self.data,
            'total_chunks': self.total_chunks,
            'name': self.name,
            'checksum': self.checksum,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)


Record = Union[HeaderRecord, DataRecord]


def parse_record(raw: Union[str, bytes, Dict[str, Any], Record]) -> Record:
    """
    Parse and classify one record.

    Classification is structural: anything carrying `index` is a data
    record; anything carrying `total_chunks` and `name` without `index`
    is a header. Everything else is rejected with CHUNK_VALIDATION.
    Header-shaped input with bad field values raises INVALID_HEADER.
    """
    if isinstance(raw, (HeaderRecord, DataRecord)):
        return raw

    if isinstance(raw, (str, bytes)):
        try:
            obj = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransferError(
                ErrorKind.CHUNK_VALIDATION, "Record is not valid JSON", reason=str(e)
            ) from e
    else:
        obj = raw

    if not isinstance(obj, dict):
        raise TransferError(
            ErrorKind.CHUNK_VALIDATION, "Record is not a JSON object",
            got=type(obj).__name__
        )

    if 'index' in obj:
        return _parse_data(obj)
    if 'total_chunks' in obj and 'name' in obj:
        return _parse_header(obj)

    raise TransferError(
        ErrorKind.CHUNK_VALIDATION, "Record is neither a header nor a data record",
        keys=sorted(obj.keys())
    )


def _parse_data(obj: Dict[str, Any]) -> DataRecord:
    index = obj.get('index')
    data = obj.get('data')
    total = obj.get('total_chunks')

    if not _is_int(index) or not _is_int(total):
        raise TransferError(
            ErrorKind.CHUNK_VALIDATION, "Data record needs integer index and total_chunks",
            index=index, total_chunks=total
        )
    if not isinstance(data, str):
        raise TransferError(
            ErrorKind.CHUNK_VALIDATION, "Data record payload missing", index=index
        )
    if not 0 <= index < total:
        raise TransferError(
            ErrorKind.CHUNK_VALIDATION, "Data record index out of range",
            index=index, total_chunks=total
        )

    name = obj.get('name')
    checksum = obj.get('checksum')
    if name is not None and not isinstance(name, str):
        raise TransferError(ErrorKind.CHUNK_VALIDATION, "Data record name must be a string", index=index)
    if checksum is not None and not isinstance(checksum, str):
        raise TransferError(ErrorKind.CHUNK_VALIDATION, "Data record checksum must be a string", index=index)

    return DataRecord(index=index, data=data, total_chunks=total, name=name, checksum=checksum)


def _parse_header(obj: Dict[str, Any]) -> HeaderRecord:
    name = obj.get('name')
    size = obj.get('size')
    total = obj.get('total_chunks')
    timestamp = obj.get('timestamp', 0)
    digest = obj.get('hash')
    mime_type = obj.get('type')

    if not isinstance(name, str):
        raise TransferError(ErrorKind.INVALID_HEADER, "Header name must be a string")
    if not _is_int(size) or size < 0:
        raise TransferError(ErrorKind.INVALID_HEADER, "Header size must be a non-negative integer", size=size)
    if not _is_int(total) or total < 0:
        raise TransferError(
            ErrorKind.INVALID_HEADER, "Header total_chunks must be a non-negative integer",
            total_chunks=total
        )
    if (size == 0) != (total == 0):
        raise TransferError(
            ErrorKind.INVALID_HEADER, "Header size and total_chunks disagree",
            size=size, total_chunks=total
        )
    if not _is_int(timestamp):
        raise TransferError(ErrorKind.INVALID_HEADER, "Header timestamp must be an integer")
    if digest is not None and (not isinstance(digest, str) or not HASH_PATTERN.match(digest)):
        raise TransferError(ErrorKind.INVALID_HEADER, "Header hash must be 64 lowercase hex chars")
    if mime_type is not None and not isinstance(mime_type, str):
        raise TransferError(ErrorKind.INVALID_HEADER, "Header type must be a string")

    return HeaderRecord(
        name=name,
        size=size,
        total_chunks=total,
        timestamp=timestamp,
        hash=digest,
        type=mime_type,
    )
