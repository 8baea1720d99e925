import errno
import fcntl
import logging
import mmap
import os
import stat
import time
from pathlib import Path
from typing import Union

from fs_latency_exporter.config import Config
from fs_latency_exporter.core.errors import ConfigurationError, FileTooSmall, ReadError, SeekError, ShortRead
from fs_latency_exporter.core.interfaces import BlockRead, IBlockReader

logger = logging.getLogger(__name__)

class DirectReader(IBlockReader):
    """
    Reads single blocks of the target file, bypassing the page cache when possible.

    The cache strategy is probed once when the file is opened:
    'direct' (O_DIRECT), 'nocache' (F_NOCACHE, macOS) or 'buffered'.
    The descriptor is owned by one probe loop and is not safe to share.
    """

    DIRECT = "direct"
    NOCACHE = "nocache"
    BUFFERED = "buffered"

    def __init__(self, path: Union[str, Path], block_size: int = Config.BLOCK_SIZE, direct: bool = True):
        self.path = Path(path)
        self._block_size = block_size
        self._fd = None
        # Anonymous maps are page aligned, which O_DIRECT needs
        self._buffer = mmap.mmap(-1, block_size)
        self.positioned = hasattr(os, "preadv")

        try:
            self._fd, self.mode = self._open(direct)
            self._length = self._measure_length()
            if self._length < block_size:
                raise FileTooSmall(self._length, block_size)
        except Exception:
            self.close()
            raise

        logger.info(f"Opened {self.path}, size {self._length}, mode {self.mode}")

    @property
    def length(self) -> int:
        return self._length

    @property
    def block_size(self) -> int:
        return self._block_size

    def _open_plain(self, flags: int = 0) -> int:
        try:
            return os.open(self.path, os.O_RDONLY | flags)
        except OSError as e:
            raise ConfigurationError(f"Can't open {self.path}: {e.strerror}") from e

    def _open(self, direct: bool):
        if direct and hasattr(os, "O_DIRECT"):
            try:
                fd = os.open(self.path, os.O_RDONLY | os.O_DIRECT)
            except OSError as e:
                if e.errno != errno.EINVAL:
                    raise ConfigurationError(f"Can't open {self.path}: {e.strerror}") from e
                logger.info(f"O_DIRECT rejected for {self.path}, using buffered reads")
            else:
                if self._accepts_direct_reads(fd):
                    return fd, self.DIRECT
                os.close(fd)
                logger.info(f"Direct reads rejected for {self.path}, using buffered reads")
        elif direct and hasattr(fcntl, "F_NOCACHE"):
            fd = self._open_plain()
            try:
                fcntl.fcntl(fd, fcntl.F_NOCACHE, 1)
            except OSError as e:
                os.close(fd)
                logger.info(f"F_NOCACHE rejected for {self.path} ({e}), using buffered reads")
            else:
                return fd, self.NOCACHE

        return self._open_plain(), self.BUFFERED

    def _accepts_direct_reads(self, fd: int) -> bool:
        # Some filesystems accept O_DIRECT at open and only fail the read
        try:
            if self.positioned:
                os.preadv(fd, [self._buffer], 0)
            else:
                os.lseek(fd, 0, os.SEEK_SET)
                os.readv(fd, [self._buffer])
        except OSError as e:
            if e.errno == errno.EINVAL:
                return False
            logger.warning(f"Trial read of {self.path} failed: {e}")
        return True

    def _measure_length(self) -> int:
        try:
            st = os.fstat(self._fd)
            if stat.S_ISDIR(st.st_mode):
                raise ConfigurationError(f"Can't open {self.path}: is a directory")
            # Seeking to the end also works for block devices, where st_size is 0
            return os.lseek(self._fd, 0, os.SEEK_END)
        except OSError as e:
            raise ConfigurationError(f"Can't read file length of {self.path}: {e.strerror}") from e

    def read_block(self, offset: int) -> BlockRead:
        if self._fd is None:
            raise ReadError(offset, f"Reader for {self.path} is closed")

        seek_seconds = None
        if not self.positioned:
            start = time.perf_counter()
            try:
                os.lseek(self._fd, offset, os.SEEK_SET)
            except OSError as e:
                raise SeekError(offset, f"Error seeking to {offset}: {e}") from e
            seek_seconds = time.perf_counter() - start

        start = time.perf_counter()
        try:
            if self.positioned:
                bytes_read = os.preadv(self._fd, [self._buffer], offset)
            else:
                bytes_read = os.readv(self._fd, [self._buffer])
        except OSError as e:
            raise ReadError(offset, f"Error reading at offset {offset}: {e}") from e
        read_seconds = time.perf_counter() - start

        if bytes_read < self._block_size:
            raise ShortRead(offset, bytes_read, self._block_size)

        return BlockRead(
            offset=offset,
            bytes_read=bytes_read,
            read_seconds=read_seconds,
            seek_seconds=seek_seconds
        )

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if not self._buffer.closed:
            self._buffer.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
