import logging
import threading
from rich.logging import RichHandler

_CONFIG_LOCK = threading.Lock()
_CONFIGURED = False

def configure_logging(level="INFO") -> None:
    """Installs a RichHandler on the root logger. Later calls only adjust the level."""
    global _CONFIGURED
    with _CONFIG_LOCK:
        if _CONFIGURED:
            logging.getLogger().setLevel(level)
            return
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, show_path=False)]
        )
        _CONFIGURED = True

class Observability:
    @staticmethod
    def track_event(name: str, metadata: dict = None):
        logging.getLogger("fs_latency_exporter.events").info(f"EVENT: {name} | {metadata or {}}")
