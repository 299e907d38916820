"""Unit tests for the ingestion pipeline."""
import threading
import numpy as np
import pytest
from speechgate.audio.models import AudioBlock, SourceFormat
from speechgate.audio.pipeline import IngestionPipeline, StaticSource
from speechgate.core.errors import DeviceUnavailable, FormatNegotiationFailed

CANONICAL = SourceFormat(sample_rate=16000)


def blocks(seconds, block_seconds=0.1, value=0.1):
    count = int(round(seconds / block_seconds))
    size = int(round(block_seconds * 16000))
    return [np.full(size, value, dtype=np.float32) for _ in range(count)]


@pytest.fixture
def pipeline():
    pipe = IngestionPipeline(StaticSource(CANONICAL), chunk_interval=1.0, sample_rate=16000)
    pipe.start()
    yield pipe
    if pipe.is_running:
        pipe.stop()


def test_chunks_are_cumulative(pipeline):
    """Test that every chunk holds all audio so far and sequences increase."""
    chunks = [c for c in (pipeline.ingest(b) for b in blocks(3.5)) if c is not None]

    assert [c.sequence for c in chunks] == [1, 2, 3]
    assert [c.samples.size for c in chunks] == [16000, 32000, 48000]
    for earlier, later in zip(chunks, chunks[1:]):
        np.testing.assert_array_equal(later.samples[:earlier.samples.size], earlier.samples)
        assert later.new_samples_start == earlier.samples.size
        assert later.new_samples.size == later.samples.size - earlier.samples.size
        np.testing.assert_array_equal(later.new_samples, later.samples[earlier.samples.size:])
    assert chunks[0].new_samples.size == chunks[0].samples.size
    assert chunks[-1].duration == pytest.approx(3.0)


def test_chunk_samples_do_not_alias_buffer(pipeline):
    """Test that consumers can't corrupt the recording through a chunk."""
    chunk = next(c for c in (pipeline.ingest(b) for b in blocks(1.0)) if c is not None)
    chunk.samples[:] = 0.0
    samples = pipeline.stop()
    assert np.all(samples == np.float32(0.1))


def test_stop_returns_everything(pipeline):
    """Test that stop returns every sample even without a chunk boundary."""
    for block in blocks(0.5):
        assert pipeline.ingest(block) is None
    samples = pipeline.stop()

    assert samples.size == 8000
    assert np.all(samples == np.float32(0.1))
    assert pipeline.chunks_emitted == 0
    assert not pipeline.is_running
    assert pipeline.buffered_samples == 0


def test_stop_without_audio():
    """Test that stopping an idle pipeline yields an empty array."""
    pipe = IngestionPipeline(StaticSource(CANONICAL), chunk_interval=1.0)
    assert pipe.stop().size == 0
    pipe.start()
    assert pipe.stop().size == 0


def test_blocks_dropped_when_not_running():
    """Test that ingest before start or after stop does nothing."""
    pipe = IngestionPipeline(StaticSource(CANONICAL), chunk_interval=0.1)
    assert pipe.ingest(np.ones(16000, dtype=np.float32)) is None
    assert pipe.buffered_samples == 0


def test_clear_restarts_recording(pipeline):
    """Test that clear discards audio but keeps recording."""
    for block in blocks(0.7):
        pipeline.ingest(block)
    pipeline.clear()
    assert pipeline.buffered_samples == 0
    assert pipeline.is_running

    chunks = [c for c in (pipeline.ingest(b) for b in blocks(1.0, value=0.2)) if c is not None]
    assert len(chunks) == 1
    assert chunks[0].samples.size == 16000
    assert chunks[0].new_samples_start == 0
    assert np.all(chunks[0].samples == np.float32(0.2))


def test_zero_interval_disables_chunks():
    """Test that a zero chunk interval only records."""
    pipe = IngestionPipeline(StaticSource(CANONICAL), chunk_interval=0.0)
    pipe.start()
    assert all(pipe.ingest(b) is None for b in blocks(2.0))
    assert pipe.stop().size == 32000


def test_callback_receives_chunks():
    """Test the chunk callback and that its errors don't break ingestion."""
    received = []

    def on_chunk(chunk):
        received.append(chunk.sequence)
        raise RuntimeError("consumer bug")

    pipe = IngestionPipeline(StaticSource(CANONICAL), chunk_interval=0.5, on_chunk=on_chunk)
    pipe.start()
    for block in blocks(1.0):
        pipe.ingest(block)

    assert received == [1, 2]
    assert pipe.chunks_emitted == 2
    assert pipe.stop().size == 16000


def test_resampling_source():
    """Test that a 48 kHz stereo int16 source is stored as 16 kHz mono."""
    fmt = SourceFormat(sample_rate=48000, channels=2, dtype="int16")
    pipe = IngestionPipeline(StaticSource(fmt), chunk_interval=1.0, sample_rate=16000)
    pipe.start()
    frames = np.full((4800, 2), 8192, dtype=np.int16)
    for _ in range(10):
        pipe.ingest(AudioBlock(samples=frames, sample_rate=48000, channels=2))
    samples = pipe.stop()

    assert abs(samples.size - 16000) <= 1
    np.testing.assert_allclose(samples, 0.25)


def test_no_source():
    """Test that starting without a source raises DeviceUnavailable."""
    with pytest.raises(DeviceUnavailable):
        IngestionPipeline(None).start()
    with pytest.raises(DeviceUnavailable):
        IngestionPipeline(StaticSource(None)).start()


def test_unsupported_format():
    """Test that an unconvertible source format fails at start."""
    pipe = IngestionPipeline(StaticSource(SourceFormat(sample_rate=16000, dtype="float16")))
    with pytest.raises(FormatNegotiationFailed):
        pipe.start()
    assert not pipe.is_running


def test_concurrent_ingest_and_clear(pipeline):
    """Test that a writer thread and clear() never leave the buffer torn."""
    stop = threading.Event()
    chunks = []

    def writer():
        while not stop.is_set():
            chunk = pipeline.ingest(np.full(160, 0.1, dtype=np.float32))
            if chunk is not None:
                chunks.append(chunk)

    thread = threading.Thread(target=writer)
    thread.start()
    for _ in range(50):
        pipeline.clear()
    stop.set()
    thread.join()

    sequences = [c.sequence for c in chunks]
    assert sequences == sorted(sequences)
    for chunk in chunks:
        assert 0 <= chunk.new_samples_start <= chunk.samples.size
        assert np.all(chunk.samples == np.float32(0.1))
