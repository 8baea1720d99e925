class ConfigurationError(Exception):
    """Fatal startup problem: the probe cannot run with this configuration."""


class FileTooSmall(ConfigurationError):
    def __init__(self, file_length: int, block_size: int):
        super().__init__(f"File is too small: {file_length} bytes (need at least {block_size})")
        self.file_length = file_length
        self.block_size = block_size


class ProbeIOError(Exception):
    """A single probe iteration failed. Recorded as a metric, never fatal."""

    def __init__(self, offset: int, message: str):
        super().__init__(message)
        self.offset = offset


class SeekError(ProbeIOError):
    pass


class ReadError(ProbeIOError):
    pass


class ShortRead(ReadError):
    def __init__(self, offset: int, bytes_read: int, block_size: int):
        super().__init__(offset, f"Short read at offset {offset}: {bytes_read} of {block_size} bytes")
        self.bytes_read = bytes_read
