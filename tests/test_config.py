"""Test configuration loading and the capacity model"""

import os

import pytest
import yaml

from src.config.capacity import chunk_size_for, qr_capacity, record_overhead
from src.config.settings import TransferConfig, load_config, save_config
from src.playback.controller import EndOfCyclePolicy, ResumePolicy
from src.transfer.codec import encode


class TestLoadConfig:
    """Test YAML configuration"""

    def test_defaults(self):
        config = load_config()
        assert config.include_hash is True
        assert config.playback.end_of_cycle_policy == EndOfCyclePolicy.LOOP
        assert config.playback.resume_policy == ResumePolicy.PRESERVE
        assert config.barcode.chunk_size is None

    def test_yaml_file(self, temp_dir):
        path = temp_dir / "optxfer.yaml"
        path.write_text(yaml.safe_dump({
            "barcode": {"version": 20, "error_correction": "h"},
            "playback": {"interval_ms": 250, "end_of_cycle": "stop", "resume": "restart"},
            "admission": {"max_file_size": 2048, "allowed_types": ["image/"]},
            "include_chunk_checksums": True,
        }))

        config = load_config(path)
        assert config.barcode.version == 20
        assert config.barcode.error_correction == "H"
        assert config.playback.interval_ms == 250
        assert config.playback.end_of_cycle_policy == EndOfCyclePolicy.STOP
        assert config.playback.resume_policy == ResumePolicy.RESTART
        assert config.admission.allowed_types == ["image/"]
        assert config.include_chunk_checksums is True

    def test_empty_file_gives_defaults(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_config(path).barcode.version == TransferConfig().barcode.version

    def test_save_and_reload(self, temp_dir):
        config = TransferConfig()
        config.playback.interval_ms = 750
        path = temp_dir / "saved.yaml"

        save_config(config, path)
        assert load_config(path).playback.interval_ms == 750

    @pytest.mark.parametrize("data", [
        {"unknown": 1},
        {"barcode": {"size": 3}},
        {"barcode": {"version": 41}},
        {"barcode": {"error_correction": "X"}},
        {"playback": {"end_of_cycle": "bounce"}},
        {"playback": {"interval_ms": 0}},
        {"retry": {"attempts": 0}},
        {"playback": "fast"},
    ])
    def test_invalid_values(self, temp_dir, data):
        path = temp_dir / "bad.yaml"
        path.write_text(yaml.safe_dump(data))
        with pytest.raises(ValueError):
            load_config(path)


# Byte-mode capacities from ISO/IEC 18004 Table 7, levels L and M
ISO_BYTE_CAPACITY_L = [
    17, 32, 53, 78, 106, 134, 154, 192, 230, 271,
    321, 367, 425, 458, 520, 586, 644, 718, 792, 858,
    929, 1003, 1091, 1171, 1273, 1367, 1465, 1528, 1628, 1732,
    1840, 1952, 2068, 2188, 2303, 2431, 2563, 2699, 2809, 2953,
]
ISO_BYTE_CAPACITY_M = [
    14, 26, 42, 62, 84, 106, 122, 152, 180, 213,
    251, 287, 331, 362, 412, 450, 504, 560, 624, 666,
    711, 779, 857, 911, 997, 1059, 1125, 1190, 1264, 1370,
    1452, 1538, 1628, 1722, 1809, 1911, 1989, 2099, 2213, 2331,
]
ISO_BYTE_CAPACITY = {"L": ISO_BYTE_CAPACITY_L, "M": ISO_BYTE_CAPACITY_M}


class TestCapacity:
    """Test chunk size derivation from symbol capacity"""

    def test_table_values(self):
        assert qr_capacity(1, "L") == 17
        assert qr_capacity(40, "H") == 1273

    @pytest.mark.parametrize("version,level,expected", [
        (7, "L", 154), (9, "L", 230), (14, "L", 458),
        (11, "Q", 177), (23, "H", 461), (33, "M", 1628),
    ])
    def test_versions_between_round_numbers(self, version, level, expected):
        assert qr_capacity(version, level) == expected

    @pytest.mark.parametrize("level", ["L", "M"])
    def test_matches_iso_table(self, level):
        assert [qr_capacity(v, level) for v in range(1, 41)] == ISO_BYTE_CAPACITY[level]

    def test_capacity_is_monotonic(self):
        for level in "LMQH":
            capacities = [qr_capacity(v, level) for v in range(1, 41)]
            assert capacities == sorted(capacities)

    def test_higher_error_correction_means_smaller_chunks(self):
        sizes = [chunk_size_for(20, level, "photo.jpg", 100_000) for level in "LMQH"]
        assert sizes == sorted(sizes, reverse=True)
        assert len(set(sizes)) == 4

    def test_too_small_symbol(self):
        with pytest.raises(ValueError):
            chunk_size_for(1, "H", "file.bin", 1000)

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            qr_capacity(10, "Z")

    @pytest.mark.parametrize("level", ["L", "M"])
    @pytest.mark.parametrize("version", range(1, 41))
    def test_every_record_fits_the_symbol(self, version, level):
        name = "measurements.csv"
        data = os.urandom(5000)
        limit = ISO_BYTE_CAPACITY[level][version - 1]

        try:
            chunk_size = chunk_size_for(version, level, name, len(data))
        except ValueError:
            # Symbol cannot hold the framing plus one base64 quantum
            assert record_overhead(name, len(data)) + 4 > limit
            return

        records = encode(data, chunk_size, True, name=name)
        for record in records[1:]:
            assert len(record.to_json().encode("utf-8")) <= limit

    @pytest.mark.parametrize("version,level,limit", [
        (12, "Q", 203), (14, "H", 194), (27, "Q", 805),
    ])
    def test_records_with_checksums_fit(self, version, level, limit):
        name = "measurements.csv"
        data = os.urandom(5000)
        chunk_size = chunk_size_for(version, level, name, len(data), with_checksum=True)

        records = encode(data, chunk_size, True, name=name, include_checksums=True)
        for record in records[1:]:
            assert len(record.to_json().encode("utf-8")) <= limit

    def test_overhead_grows_with_name(self):
        assert record_overhead("a" * 40, 100) > record_overhead("a", 100)

    def test_config_override(self):
        config = TransferConfig()
        derived = config.chunk_size_for("x.bin", 1000)
        config.barcode.chunk_size = 64
        assert config.chunk_size_for("x.bin", 1000) == 64
        assert derived > 0
