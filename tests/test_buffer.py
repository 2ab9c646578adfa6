"""Test the receive buffer"""

import os

import pytest

from src.transfer.buffer import ReceiveBuffer
from src.transfer.codec import MISSING_REPORT_LIMIT, decode, encode
from src.transfer.errors import ErrorKind, TransferError
from src.transfer.records import DataRecord, HeaderRecord


@pytest.fixture
def texts():
    records = encode(os.urandom(450), 100, True, name="scan.bin")
    return [r.to_json() for r in records]


class TestReceiveBuffer:
    """Test accumulation of captured records"""

    def test_dedup_idempotence(self, texts):
        once = ReceiveBuffer()
        once.append(texts[1])

        twice = ReceiveBuffer()
        assert twice.append(texts[1]) is True
        assert twice.append(texts[1]) is False

        assert twice.received_count == once.received_count == 1

    def test_first_header_wins(self, texts):
        buffer = ReceiveBuffer()
        other = encode(b"other file", 4, True, name="other.bin")[0]

        assert buffer.append(texts[0]) is True
        assert buffer.append(other.to_json()) is False
        assert buffer.header.name == "scan.bin"

    def test_completeness(self, texts):
        buffer = ReceiveBuffer()
        for text in texts[1:]:
            buffer.append(text)

        # All data present but no header yet
        assert not buffer.is_complete()
        assert buffer.missing() == []

        buffer.append(texts[0])
        assert buffer.is_complete()
        assert buffer.progress == 1.0

    def test_missing_and_progress(self, texts):
        buffer = ReceiveBuffer()
        buffer.append(texts[0])
        buffer.append(texts[2])
        buffer.append(texts[4])

        assert buffer.missing() == [0, 2, 4]
        assert buffer.progress == pytest.approx(2 / 5)
        assert not buffer.is_complete()

    def test_malformed_leaves_state_untouched(self, texts):
        buffer = ReceiveBuffer()
        buffer.append(texts[0])
        buffer.append(texts[1])

        with pytest.raises(TransferError) as exc_info:
            buffer.append('{"index": 0')
        assert exc_info.value.kind == ErrorKind.CHUNK_VALIDATION

        assert buffer.header is not None
        assert list(buffer.chunks) == [0]

    def test_drain_feeds_decode_and_clears(self, texts):
        buffer = ReceiveBuffer()
        for text in reversed(texts + texts):
            buffer.append(text)

        records = buffer.drain()
        assert len(records) == len(texts)
        assert decode(records).name == "scan.bin"

        assert buffer.header is None
        assert buffer.received_count == 0

    def test_snapshot_keeps_records(self, texts):
        buffer = ReceiveBuffer()
        for text in texts:
            buffer.append(text)

        assert len(buffer.snapshot()) == len(texts)
        assert buffer.is_complete()

    def test_empty_file_completes_with_header_only(self):
        header = encode(b"", 10, True, name="empty")[0]
        buffer = ReceiveBuffer()
        buffer.append(header.to_json())

        assert buffer.is_complete()
        assert decode(buffer.drain()).data == b""

    def test_chunks_from_another_transfer_do_not_complete(self):
        ours = encode(os.urandom(300), 100, True, name="ours.bin")
        theirs = encode(os.urandom(800), 100, True, name="theirs.bin")
        assert ours[0].total_chunks == 3
        assert theirs[0].total_chunks == 8

        buffer = ReceiveBuffer()
        buffer.append(ours[0].to_json())
        buffer.append(ours[1].to_json())
        buffer.append(ours[2].to_json())
        assert buffer.append(theirs[6].to_json()) is False

        assert not buffer.is_complete()
        assert buffer.missing() == [2]
        assert buffer.received_count == 2

    def test_foreign_chunks_before_header_are_dropped(self):
        ours = encode(os.urandom(300), 100, True, name="ours.bin")
        theirs = encode(os.urandom(800), 100, True, name="theirs.bin")

        buffer = ReceiveBuffer()
        buffer.append(theirs[2].to_json())
        buffer.append(theirs[8].to_json())
        buffer.append(ours[0].to_json())

        assert buffer.received_count == 0
        # The slot taken by the foreign chunk is free again
        assert buffer.append(ours[2].to_json()) is True
        buffer.append(ours[1].to_json())
        buffer.append(ours[3].to_json())

        assert buffer.is_complete()
        assert decode(buffer.drain()).name == "ours.bin"

    def test_missing_is_capped_for_huge_headers(self):
        total = 10 ** 9
        buffer = ReceiveBuffer()
        buffer.add(HeaderRecord(name="big.bin", size=total * 3, total_chunks=total, timestamp=0))
        buffer.add(DataRecord(index=1, data="AAAA", total_chunks=total))

        missing = buffer.missing()
        assert len(missing) == MISSING_REPORT_LIMIT
        assert missing[:2] == [0, 2]
        assert buffer.missing(limit=3) == [0, 2, 3]
