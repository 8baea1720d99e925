import enum
import logging
import threading
from typing import Optional

from fs_latency_exporter.core.errors import ProbeIOError
from fs_latency_exporter.core.interfaces import IBlockReader, IBlockSelector, IMetricsSink
from fs_latency_exporter.utils.observability import Observability

logger = logging.getLogger(__name__)

class ProbeState(str, enum.Enum):
    SAMPLING = "SAMPLING"
    STOPPED = "STOPPED"

class LatencyProbe:
    """
    The sampling loop: random block, timed read, one observation per iteration.

    Every iteration ends in exactly one of record_success or record_error.
    There is no pacing unless an interval is given; read latency is the rate limit.
    """

    def __init__(
        self,
        reader: IBlockReader,
        selector: IBlockSelector,
        metrics: IMetricsSink,
        interval: float = 0.0
    ):
        if interval < 0:
            raise ValueError(f"Interval must not be negative, got {interval}")
        self.reader = reader
        self.selector = selector
        self.metrics = metrics
        self.interval = interval
        self.state = ProbeState.SAMPLING
        self._stop = threading.Event()
        self._failing = 0

    def step(self) -> bool:
        """Runs one iteration. Returns False if the read failed (and was counted)."""
        offset = self.selector.next_offset(self.reader.length, self.reader.block_size)
        try:
            result = self.reader.read_block(offset)
        except ProbeIOError as e:
            self.metrics.record_error()
            if self._failing == 0:
                logger.warning(f"Probe read failed: {e}")
            else:
                logger.debug(f"Probe read failed: {e}")
            self._failing += 1
            return False

        self.metrics.record_success(result.duration)
        if self._failing:
            logger.info(f"Probe reads recovered after {self._failing} consecutive errors")
            self._failing = 0
        return True

    def run(self, iterations: Optional[int] = None) -> None:
        """Samples until stop() is called or the iteration count is reached."""
        Observability.track_event("Probe Started", {
            "path": str(getattr(self.reader, "path", "")),
            "interval": self.interval
        })
        if not self._stop.is_set():
            self.state = ProbeState.SAMPLING
        done = 0
        try:
            while not self._stop.is_set():
                if iterations is not None and done >= iterations:
                    break
                self.step()
                done += 1
                if self.interval and self._stop.wait(self.interval):
                    break
        finally:
            self.state = ProbeState.STOPPED
            Observability.track_event("Probe Stopped", {"iterations": done})

    def stop(self) -> None:
        """Requests the loop to exit after the in-flight read. Safe from signal handlers."""
        self._stop.set()
        self.state = ProbeState.STOPPED
