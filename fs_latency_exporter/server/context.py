from pathlib import Path
from typing import Optional, Union

from fs_latency_exporter.config import Config
from fs_latency_exporter.core.interfaces import ListenAddress
from fs_latency_exporter.core.metrics import MetricsRegistry
from fs_latency_exporter.core.reader import DirectReader
from fs_latency_exporter.core.selector import RandomBlockSelector
from fs_latency_exporter.server.exporter import MetricsExporter
from fs_latency_exporter.server.probe import LatencyProbe

class Context:
    """Owns the single registry and hands it to both the probe and the exporter."""

    def __init__(self, registry: MetricsRegistry, reader: DirectReader, probe: LatencyProbe,
                 exporter: Optional[MetricsExporter] = None):
        self.registry = registry
        self.reader = reader
        self.probe = probe
        self.exporter = exporter

    @classmethod
    def build(
        cls,
        path: Union[str, Path],
        listen: Optional[ListenAddress] = None,
        interval: float = 0.0,
        direct: bool = True
    ) -> "Context":
        # The file is opened first so a bad path never starts a server
        reader = DirectReader(path, block_size=Config.BLOCK_SIZE, direct=direct)
        registry = MetricsRegistry()
        probe = LatencyProbe(
            reader=reader,
            selector=RandomBlockSelector(),
            metrics=registry,
            interval=interval
        )
        exporter = MetricsExporter(registry, listen) if listen is not None else None
        return cls(registry, reader, probe, exporter)

    def close(self) -> None:
        self.probe.stop()
        if self.exporter is not None:
            self.exporter.stop()
        self.reader.close()
