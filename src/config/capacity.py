"""
QR symbol capacity model.

Chunk size is bounded by what one symbol can carry: the base64-expanded
payload plus the JSON framing of a data record must fit the byte-mode
capacity of the chosen version at the chosen error correction level.
Higher error correction leaves less room, so the chunk size shrinks.
"""

import json
from typing import Dict, Tuple

ERROR_CORRECTION_LEVELS = ('L', 'M', 'Q', 'H')

# Byte-mode capacities (ISO/IEC 18004), one (L, M, Q, H) row per version.
# Capacity does not grow linearly between versions, so every row is listed.
_BYTE_CAPACITY_ROWS: Tuple[Tuple[int, int, int, int], ...] = (
    (17, 14, 11, 7),            # 1
    (32, 26, 20, 14),
    (53, 42, 32, 24),
    (78, 62, 46, 34),
    (106, 84, 60, 44),          # 5
    (134, 106, 74, 58),
    (154, 122, 86, 64),
    (192, 152, 108, 84),
    (230, 180, 130, 98),
    (271, 213, 151, 119),       # 10
    (321, 251, 177, 137),
    (367, 287, 203, 155),
    (425, 331, 241, 177),
    (458, 362, 258, 194),
    (520, 412, 292, 220),       # 15
    (586, 450, 322, 250),
    (644, 504, 364, 280),
    (718, 560, 394, 310),
    (792, 624, 442, 338),
    (858, 666, 482, 382),       # 20
    (929, 711, 509, 403),
    (1003, 779, 565, 439),
    (1091, 857, 611, 461),
    (1171, 911, 661, 511),
    (1273, 997, 715, 535),      # 25
    (1367, 1059, 751, 593),
    (1465, 1125, 805, 625),
    (1528, 1190, 868, 658),
    (1628, 1264, 908, 698),
    (1732, 1370, 982, 742),     # 30
    (1840, 1452, 1030, 790),
    (1952, 1538, 1112, 842),
    (2068, 1628, 1168, 898),
    (2188, 1722, 1228, 958),
    (2303, 1809, 1283, 983),    # 35
    (2431, 1911, 1351, 1051),
    (2563, 1989, 1423, 1093),
    (2699, 2099, 1499, 1139),
    (2809, 2213, 1579, 1219),
    (2953, 2331, 1663, 1273),   # 40
)

BYTE_CAPACITY: Dict[int, Dict[str, int]] = {
    version: dict(zip(ERROR_CORRECTION_LEVELS, row))
    for version, row in enumerate(_BYTE_CAPACITY_ROWS, start=1)
}


def _check_level(error_correction: str) -> str:
    level = error_correction.upper()
    if level not in ERROR_CORRECTION_LEVELS:
        raise ValueError(f"Unknown error correction level: {error_correction}")
    return level


def qr_capacity(version: int, error_correction: str) -> int:
    """Byte capacity of a QR version at an EC level"""
    if not 1 <= version <= 40:
        raise ValueError(f"QR version must be 1-40, got {version}")
    level = _check_level(error_correction)
    return BYTE_CAPACITY[version][level]


def record_overhead(name: str, file_size: int, with_checksum: bool = False) -> int:
    """
    Bytes of JSON framing around the payload of the largest possible data record.
    Index and chunk count are bounded by the file size.
    """
    bound = max(file_size, 1)
    worst = {
        'index': bound,
        'data': '',
        'total_chunks': bound,
        'name': name,
    }
    if with_checksum:
        worst['checksum'] = '0' * 64
    text = json.dumps(worst, separators=(',', ':'), ensure_ascii=False)
    return len(text.encode('utf-8'))


def chunk_size_for(version: int, error_correction: str, name: str,
                   file_size: int, with_checksum: bool = False) -> int:
    """Largest raw window whose base64 record still fits one symbol"""
    usable = qr_capacity(version, error_correction) - record_overhead(name, file_size, with_checksum)
    # base64 turns every 3 raw bytes into 4 characters
    chunk_size = (usable // 4) * 3
    if chunk_size <= 0:
        raise ValueError(
            f"QR version {version}-{error_correction} too small for record framing "
            f"({usable} bytes usable)"
        )
    return chunk_size
