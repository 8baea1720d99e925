from abc import ABC, abstractmethod
from typing import Optional, List
from pydantic import BaseModel, Field

# Domain Models (DTOs)
class BlockRead(BaseModel):
    offset: int
    bytes_read: int
    read_seconds: float
    seek_seconds: Optional[float] = None  # None when the read was positioned (pread)

    @property
    def duration(self) -> float:
        return self.read_seconds + (self.seek_seconds or 0.0)

class ListenAddress(BaseModel):
    host: str
    port: int = Field(ge=0, le=65535)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

class HistogramSnapshot(BaseModel):
    errors: int
    bounds: List[float]
    cumulative_counts: List[int]  # one per bound, then +Inf
    total_seconds: float
    count: int

    @property
    def mean_seconds(self) -> float:
        return self.total_seconds / self.count if self.count else 0.0

# Interfaces
class IBlockSelector(ABC):
    @abstractmethod
    def next_offset(self, file_length: int, block_size: int) -> int:
        """Picks a block-aligned offset such that a whole block fits in the file."""
        pass

class IBlockReader(ABC):
    @property
    @abstractmethod
    def length(self) -> int:
        """Length of the target in bytes, measured once at open."""
        pass

    @property
    @abstractmethod
    def block_size(self) -> int:
        pass

    @abstractmethod
    def read_block(self, offset: int) -> BlockRead:
        """Reads exactly one block at offset. Raises SeekError or ReadError."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

class IMetricsSink(ABC):
    @abstractmethod
    def record_success(self, duration: float) -> None:
        pass

    @abstractmethod
    def record_error(self) -> None:
        pass
