"""Transfer progress reporting and human-readable formatting"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

KB = 1024
MB = 1024 * KB
GB = 1024 * MB


class TransferStatus(Enum):
    """Lifecycle of one transfer as shown to the user"""
    IDLE = 'idle'
    PREPARING = 'preparing'
    TRANSFERRING = 'transferring'
    PAUSED = 'paused'
    COMPLETED = 'completed'
    ERROR = 'error'


@dataclass
class TransferProgress:
    """Snapshot of transfer progress"""
    file_name: str
    total_chunks: int
    completed_chunks: int
    speed: float = 0.0  # chunks per second
    status: TransferStatus = TransferStatus.IDLE
    error: Optional[str] = None

    @property
    def fraction(self) -> float:
        if self.total_chunks == 0:
            return 1.0 if self.status == TransferStatus.COMPLETED else 0.0
        return self.completed_chunks / self.total_chunks

    @property
    def estimated_time_remaining(self) -> Optional[float]:
        """Seconds left at the current speed, None when unknown"""
        if self.speed <= 0:
            return None
        return (self.total_chunks - self.completed_chunks) / self.speed

    def describe(self) -> str:
        text = f"{self.file_name}: {self.completed_chunks}/{self.total_chunks} ({self.status.value})"
        eta = self.estimated_time_remaining
        if eta is not None:
            text += f", {format_time(eta)} left"
        if self.error:
            text += f" - {self.error}"
        return text


def format_size(num_bytes: float) -> str:
    if num_bytes < KB:
        return f"{int(num_bytes)} B"
    elif num_bytes < MB:
        return f"{num_bytes / KB:.2f} KB"
    elif num_bytes < GB:
        return f"{num_bytes / MB:.2f} MB"
    return f"{num_bytes / GB:.2f} GB"


def format_speed(bytes_per_second: float) -> str:
    return f"{format_size(bytes_per_second)}/s"


def format_time(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes}m {round(seconds % 60)}s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m"
