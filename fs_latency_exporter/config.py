import os
from dotenv import load_dotenv
from fs_latency_exporter.core.errors import ConfigurationError
from fs_latency_exporter.core.interfaces import ListenAddress

load_dotenv()

class Config:
    TARGET_FILE = os.getenv("FSLAT_TARGET")
    METRICS_ADDR = os.getenv("FSLAT_METRICS_ADDR", "0.0.0.0:8080")
    INTERVAL = float(os.getenv("FSLAT_INTERVAL", "0"))
    DIRECT_IO = os.getenv("FSLAT_DIRECT_IO", "true").lower() == "true"
    LOG_LEVEL = os.getenv("FSLAT_LOG_LEVEL", "INFO").upper()

    # Unit of every read; also the alignment required for O_DIRECT
    BLOCK_SIZE = 4096

def parse_listen_address(value: str) -> ListenAddress:
    """Accepts 'host:port', '[v6]:port' or a bare port (all interfaces)."""
    text = str(value).strip()
    if text.isdigit():
        host, port = "0.0.0.0", text
    elif text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        if not sep:
            raise ConfigurationError(f"Invalid listen address: {value!r}")
    else:
        host, sep, port = text.rpartition(":")
        if not sep or not host or ":" in host:
            raise ConfigurationError(f"Invalid listen address: {value!r}")

    try:
        return ListenAddress(host=host, port=int(port))
    except ValueError as e:
        raise ConfigurationError(f"Invalid listen address: {value!r}") from e
