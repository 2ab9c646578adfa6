"""Caller-side admission checks, run before encode and before writing output"""

import mimetypes
from pathlib import Path
from typing import Optional, Sequence
import logging

import psutil

from .errors import ErrorKind, TransferError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or DEFAULT_MIME_TYPE


def check_file_size(size: int, max_size: int):
    """Reject files above the configured maximum"""
    if size > max_size:
        raise TransferError(
            ErrorKind.FILE_TOO_LARGE, "File exceeds maximum transfer size",
            size=size, max_size=max_size
        )


def check_file_type(mime_type: str, allowed_types: Optional[Sequence[str]] = None):
    """
    Empty allow-list admits everything; otherwise the MIME type must start
    with one of the allowed prefixes (case-insensitive), so "image/" admits
    every image type.
    """
    if not allowed_types:
        return
    lowered = mime_type.lower()
    if any(lowered.startswith(allowed.lower()) for allowed in allowed_types):
        return
    raise TransferError(
        ErrorKind.UNSUPPORTED_FILE_TYPE, f"File type {mime_type} is not allowed",
        type=mime_type, allowed=list(allowed_types)
    )


def check_free_space(directory: Path, needed: int, reserve: int = 0):
    """Make sure `directory` can hold `needed` bytes plus a reserve"""
    usage = psutil.disk_usage(str(directory))
    if usage.free < needed + reserve:
        raise TransferError(
            ErrorKind.INSUFFICIENT_STORAGE, f"Not enough free space in {directory}",
            needed=needed, reserve=reserve, free=usage.free
        )
    logger.debug(f"{directory}: {usage.free} bytes free, {needed} needed")


def admit_file(path: Path, size: int, max_size: int,
               allowed_types: Optional[Sequence[str]] = None) -> str:
    """Run the sender-side checks and return the detected MIME type"""
    mime_type = guess_mime_type(path)
    check_file_size(size, max_size)
    check_file_type(mime_type, allowed_types)
    return mime_type
