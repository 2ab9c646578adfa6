from .settings import (
    TransferConfig,
    BarcodeConfig,
    PlaybackConfig,
    AdmissionConfig,
    RetryConfig,
    load_config,
    save_config,
    config_from_dict
)
from .capacity import qr_capacity, chunk_size_for, record_overhead

__all__ = [
    'TransferConfig',
    'BarcodeConfig',
    'PlaybackConfig',
    'AdmissionConfig',
    'RetryConfig',
    'load_config',
    'save_config',
    'config_from_dict',
    'qr_capacity',
    'chunk_size_for',
    'record_overhead'
]
