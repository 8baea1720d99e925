import os
import random
import threading
import time
import pytest
from fs_latency_exporter.core.errors import ReadError, SeekError
from fs_latency_exporter.core.interfaces import BlockRead, IBlockReader
from fs_latency_exporter.core.metrics import MetricsRegistry
from fs_latency_exporter.core.reader import DirectReader
from fs_latency_exporter.core.selector import RandomBlockSelector
from fs_latency_exporter.server.probe import LatencyProbe, ProbeState

BLOCK = 4096

class ScriptedReader(IBlockReader):
    """Fails according to a script of exceptions (None = success)."""

    def __init__(self, script):
        self.script = list(script)
        self.offsets = []

    @property
    def length(self):
        return 16 * BLOCK

    @property
    def block_size(self):
        return BLOCK

    def read_block(self, offset):
        self.offsets.append(offset)
        outcome = self.script.pop(0) if self.script else None
        if outcome is not None:
            raise outcome
        return BlockRead(offset=offset, bytes_read=BLOCK, read_seconds=0.002, seek_seconds=0.001)

    def close(self):
        pass

def test_single_block_file_succeeds_every_iteration(tmp_path):
    f = tmp_path / "one_block.bin"
    f.write_bytes(os.urandom(BLOCK))
    registry = MetricsRegistry()

    with DirectReader(f, direct=False) as reader:
        probe = LatencyProbe(reader, RandomBlockSelector(), registry)
        probe.run(iterations=50)

    snap = registry.snapshot()
    assert snap.count == 50
    assert snap.errors == 0
    assert probe.state == ProbeState.STOPPED

def test_each_iteration_records_exactly_one_outcome():
    reader = ScriptedReader([
        SeekError(0, "seek failed"),
        None,
        ReadError(0, "read failed"),
        ReadError(0, "read failed"),
        None,
    ])
    registry = MetricsRegistry()
    probe = LatencyProbe(reader, RandomBlockSelector(random.Random(3)), registry)

    results = [probe.step() for _ in range(5)]

    assert results == [False, True, False, False, True]
    snap = registry.snapshot()
    assert snap.errors == 3
    assert snap.count == 2
    # seek and read are summed into one observation
    assert snap.total_seconds == pytest.approx(2 * 0.003)
    assert all(o % BLOCK == 0 for o in reader.offsets)

def test_truncated_file_counts_error_then_recovers(tmp_path):
    f = tmp_path / "target.bin"
    f.write_bytes(os.urandom(8 * BLOCK))
    registry = MetricsRegistry()

    with DirectReader(f, direct=False) as reader:
        probe = LatencyProbe(reader, RandomBlockSelector(), registry)
        probe.run(iterations=5)
        before = registry.snapshot()

        os.truncate(f, 0)
        assert probe.step() is False
        after = registry.snapshot()
        assert after.errors == before.errors + 1
        assert after.count == before.count
        assert after.cumulative_counts == before.cumulative_counts

        os.truncate(f, 8 * BLOCK)
        assert probe.step() is True
        assert registry.snapshot().count == before.count + 1

def test_stop_ends_unbounded_run_from_another_thread():
    registry = MetricsRegistry()
    probe = LatencyProbe(ScriptedReader([]), RandomBlockSelector(), registry)

    t = threading.Thread(target=probe.run)
    t.start()
    time.sleep(0.05)
    probe.stop()
    t.join(timeout=5)

    assert not t.is_alive()
    assert probe.state == ProbeState.STOPPED
    assert registry.snapshot().count > 0

def test_stop_interrupts_interval_wait():
    probe = LatencyProbe(ScriptedReader([]), RandomBlockSelector(), MetricsRegistry(), interval=30)

    t = threading.Thread(target=probe.run)
    started = time.monotonic()
    t.start()
    time.sleep(0.05)
    probe.stop()
    t.join(timeout=5)

    assert not t.is_alive()
    assert time.monotonic() - started < 5

def test_unexpected_errors_propagate():
    class BrokenSelector(RandomBlockSelector):
        def next_offset(self, file_length, block_size):
            raise RuntimeError("boom")

    probe = LatencyProbe(ScriptedReader([]), BrokenSelector(), MetricsRegistry())
    with pytest.raises(RuntimeError):
        probe.run()
    assert probe.state == ProbeState.STOPPED

def test_negative_interval_is_rejected():
    with pytest.raises(ValueError):
        LatencyProbe(ScriptedReader([]), RandomBlockSelector(), MetricsRegistry(), interval=-1)
