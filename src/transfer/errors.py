"""Transfer error kinds"""

from enum import Enum
from typing import Any, Dict


class ErrorKind(Enum):
    """Failure categories surfaced to callers"""
    # Codec / buffer (facts about the data)
    INVALID_HEADER = "invalid_header"
    CHUNK_VALIDATION = "chunk_validation"
    INCOMPLETE_CHUNKS = "incomplete_chunks"
    FILE_INTEGRITY = "file_integrity"

    # Caller side
    TRANSFER_TIMEOUT = "transfer_timeout"
    INSUFFICIENT_STORAGE = "insufficient_storage"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    FILE_TOO_LARGE = "file_too_large"


# Kinds that describe the data itself; retrying cannot change the outcome
PERMANENT_KINDS = frozenset({
    ErrorKind.INVALID_HEADER,
    ErrorKind.CHUNK_VALIDATION,
    ErrorKind.INCOMPLETE_CHUNKS,
    ErrorKind.FILE_INTEGRITY,
})


class TransferError(Exception):
    """
    Single error type for the whole transfer pipeline.
    Callers switch on `kind`; `details` carries the structured context
    (e.g. expected vs. actual chunk counts).
    """

    def __init__(self, kind: ErrorKind, message: str, **details: Any):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details: Dict[str, Any] = details

    @property
    def transient(self) -> bool:
        return self.kind not in PERMANENT_KINDS

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.kind.value}] {self.message}"
        extra = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"[{self.kind.value}] {self.message} ({extra})"

    def __repr__(self) -> str:
        return f"TransferError({self.kind.name}, {self.message!r}, {self.details!r})"
