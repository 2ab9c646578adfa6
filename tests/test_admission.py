"""Test caller-side admission checks"""

from collections import namedtuple
from pathlib import Path

import pytest

from src.transfer import admission
from src.transfer.admission import (
    admit_file,
    check_file_size,
    check_file_type,
    check_free_space,
    guess_mime_type,
)
from src.transfer.errors import ErrorKind, TransferError

DiskUsage = namedtuple("DiskUsage", "total used free percent")


class TestAdmission:
    """Test size, type and storage checks"""

    def test_size_limit(self):
        check_file_size(1024, 1024)
        with pytest.raises(TransferError) as exc_info:
            check_file_size(1025, 1024)
        assert exc_info.value.kind == ErrorKind.FILE_TOO_LARGE
        assert exc_info.value.details == {"size": 1025, "max_size": 1024}

    def test_empty_allow_list_admits_everything(self):
        check_file_type("application/x-anything", [])
        check_file_type("application/x-anything", None)

    def test_type_prefix_match(self):
        check_file_type("image/png", ["image/"])
        check_file_type("IMAGE/JPEG", ["image/"])
        with pytest.raises(TransferError) as exc_info:
            check_file_type("text/plain", ["image/", "application/pdf"])
        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_FILE_TYPE

    def test_mime_guess(self):
        assert guess_mime_type(Path("notes.txt")) == "text/plain"
        assert guess_mime_type(Path("blob.unknownext")) == "application/octet-stream"

    def test_admit_file_returns_type(self):
        assert admit_file(Path("a.txt"), 10, 100) == "text/plain"

    def test_free_space(self, temp_dir, monkeypatch):
        monkeypatch.setattr(
            admission.psutil, "disk_usage",
            lambda path: DiskUsage(total=1000, used=900, free=100, percent=90.0)
        )

        check_free_space(temp_dir, 60, reserve=40)
        with pytest.raises(TransferError) as exc_info:
            check_free_space(temp_dir, 61, reserve=40)
        assert exc_info.value.kind == ErrorKind.INSUFFICIENT_STORAGE
        assert exc_info.value.details["free"] == 100

    def test_free_space_real_disk(self, temp_dir):
        check_free_space(temp_dir, 1)
