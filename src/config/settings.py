"""Transfer configuration loaded from YAML"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import yaml

from ..playback.controller import EndOfCyclePolicy, ResumePolicy
from .capacity import ERROR_CORRECTION_LEVELS, chunk_size_for

logger = logging.getLogger(__name__)


@dataclass
class BarcodeConfig:
    """Symbol size and error correction; together they bound the chunk size"""
    version: int = 15
    error_correction: str = "M"
    chunk_size: Optional[int] = None  # explicit override of the derived size

    def validate(self):
        if not 1 <= self.version <= 40:
            raise ValueError(f"barcode.version must be 1-40, got {self.version}")
        self.error_correction = str(self.error_correction).upper()
        if self.error_correction not in ERROR_CORRECTION_LEVELS:
            raise ValueError(f"barcode.error_correction must be one of {ERROR_CORRECTION_LEVELS}")
        if self.chunk_size is not None and self.chunk_size <= 0:
            raise ValueError("barcode.chunk_size must be positive")


@dataclass
class PlaybackConfig:
    interval_ms: int = 500
    end_of_cycle: str = EndOfCyclePolicy.LOOP.value
    resume: str = ResumePolicy.PRESERVE.value

    def validate(self):
        if self.interval_ms <= 0:
            raise ValueError("playback.interval_ms must be positive")
        # Raises ValueError on unknown policy names
        EndOfCyclePolicy(self.end_of_cycle)
        ResumePolicy(self.resume)

    @property
    def end_of_cycle_policy(self) -> EndOfCyclePolicy:
        return EndOfCyclePolicy(self.end_of_cycle)

    @property
    def resume_policy(self) -> ResumePolicy:
        return ResumePolicy(self.resume)


@dataclass
class AdmissionConfig:
    max_file_size: int = 1024 * 1024  # 1MB
    allowed_types: List[str] = field(default_factory=list)
    min_free_space: int = 0  # bytes kept free on the receiving disk

    def validate(self):
        if self.max_file_size <= 0:
            raise ValueError("admission.max_file_size must be positive")
        if self.min_free_space < 0:
            raise ValueError("admission.min_free_space must not be negative")


@dataclass
class RetryConfig:
    attempts: int = 3
    delay: float = 1.0  # seconds, multiplied by the attempt number

    def validate(self):
        if self.attempts < 1:
            raise ValueError("retry.attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("retry.delay must not be negative")


@dataclass
class TransferConfig:
    """Top-level configuration"""
    barcode: BarcodeConfig = field(default_factory=BarcodeConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    include_hash: bool = True
    include_chunk_checksums: bool = False
    receive_timeout: Optional[float] = 300.0  # seconds, None waits forever

    def validate(self):
        self.barcode.validate()
        self.playback.validate()
        self.admission.validate()
        self.retry.validate()
        if self.receive_timeout is not None and self.receive_timeout <= 0:
            raise ValueError("receive_timeout must be positive")

    def chunk_size_for(self, name: str, file_size: int) -> int:
        """Explicit chunk size if configured, otherwise derived from the symbol capacity"""
        if self.barcode.chunk_size is not None:
            return self.barcode.chunk_size
        return chunk_size_for(
            self.barcode.version,
            self.barcode.error_correction,
            name,
            file_size,
            with_checksum=self.include_chunk_checksums,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = {
    'barcode': BarcodeConfig,
    'playback': PlaybackConfig,
    'admission': AdmissionConfig,
    'retry': RetryConfig,
}


def _build_section(cls, name: str, values: Any):
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
    return cls(**values)


def config_from_dict(data: Dict[str, Any]) -> TransferConfig:
    """Build and validate a TransferConfig from plain data"""
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")

    top_level = {f.name for f in fields(TransferConfig)}
    unknown = set(data) - top_level
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    kwargs = {}
    for key, value in data.items():
        if key in _SECTIONS:
            kwargs[key] = _build_section(_SECTIONS[key], key, value)
        else:
            kwargs[key] = value

    config = TransferConfig(**kwargs)
    config.validate()
    return config


def load_config(path: Optional[Path] = None) -> TransferConfig:
    """Load configuration from a YAML file; defaults when no path is given"""
    if path is None:
        config = TransferConfig()
        config.validate()
        return config

    path = Path(path)
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    config = config_from_dict(data)
    logger.info(f"Loaded configuration from {path}")
    return config


def save_config(config: TransferConfig, path: Path):
    with open(path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
