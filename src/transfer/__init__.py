from .errors import TransferError, ErrorKind
from .records import HeaderRecord, DataRecord, Record, parse_record
from .codec import encode, decode, content_hash, DecodedFile
from .buffer import ReceiveBuffer
from .retry import retry_operation
from .progress import TransferProgress, TransferStatus

__all__ = [
    'TransferError',
    'ErrorKind',
    'HeaderRecord',
    'DataRecord',
    'Record',
    'parse_record',
    'encode',
    'decode',
    'content_hash',
    'DecodedFile',
    'ReceiveBuffer',
    'retry_operation',
    'TransferProgress',
    'TransferStatus'
]
