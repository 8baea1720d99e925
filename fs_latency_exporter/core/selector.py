import random
from typing import Optional
from fs_latency_exporter.core.interfaces import IBlockSelector
from fs_latency_exporter.core.errors import FileTooSmall

class RandomBlockSelector(IBlockSelector):
    """
    Uniform draw over the whole blocks of the file.
    Calls are independent; there is no traversal order to resume.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def next_offset(self, file_length: int, block_size: int) -> int:
        if block_size <= 0:
            raise ValueError(f"Block size must be positive, got {block_size}")
        if file_length < block_size:
            raise FileTooSmall(file_length, block_size)

        # Trailing partial block is never selected
        return self.rng.randrange(file_length // block_size) * block_size
