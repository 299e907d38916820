"""Audio ingestion pipeline: native blocks in, canonical buffer and cumulative chunks out."""
import threading
import time
from typing import Callable, Optional, Protocol, Union
import numpy as np
from speechgate.audio.buffers import SampleBuffer
from speechgate.audio.models import AudioBlock, AudioChunk, SourceFormat
from speechgate.audio.resample import FormatConverter
from speechgate.core.config import settings
from speechgate.core.errors import DeviceUnavailable
from speechgate.core.logging import logger


ChunkCallback = Callable[[AudioChunk], None]


class AudioSource(Protocol):
    """Anything that can tell the pipeline which native format it delivers."""

    @property
    def source_format(self) -> Optional[SourceFormat]:
        """Native format, or None when no input device is available."""


class StaticSource:
    """Source with a fixed, known format (files, network streams, tests)."""

    def __init__(self, source_format: Optional[SourceFormat]):
        self._format = source_format

    @property
    def source_format(self) -> Optional[SourceFormat]:
        return self._format


class IngestionPipeline:
    """
    Owns the sample buffer of one recording.

    ``ingest`` is meant to be called from the capture callback: it converts
    the block (outside the lock), appends it, and every time
    ``chunk_interval`` seconds of new audio have accumulated it emits a copy
    of the *whole* buffer. Chunks are cumulative, so a consumer that only
    looks at the latest chunk still sees everything said so far.

    ``stop`` and ``clear`` are called from the controlling thread.
    """

    def __init__(
        self,
        source: Optional[AudioSource],
        chunk_interval: Optional[float] = None,
        on_chunk: Optional[ChunkCallback] = None,
        sample_rate: Optional[int] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Capture collaborator providing the native format
            chunk_interval: Seconds of new audio per cumulative chunk (0 disables chunks)
            on_chunk: Called with every emitted chunk, outside the buffer lock
            sample_rate: Canonical sample rate
        """
        self.source = source
        self.sample_rate = sample_rate or settings.sample_rate
        if chunk_interval is None:
            chunk_interval = settings.chunk_interval_seconds
        self.chunk_interval = chunk_interval
        self.cadence_samples = max(0, int(round(chunk_interval * self.sample_rate)))
        self.on_chunk = on_chunk

        self._buffer = SampleBuffer(initial_capacity=self.sample_rate * 10)
        self._converter: Optional[FormatConverter] = None
        self._running = threading.Event()
        self._sequence = 0
        self._sequence_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def buffered_samples(self) -> int:
        return len(self._buffer)

    @property
    def buffered_duration(self) -> float:
        return self.buffered_samples / self.sample_rate

    @property
    def chunks_emitted(self) -> int:
        return self._sequence

    def start(self) -> None:
        """
        Start a new recording.

        Raises:
            DeviceUnavailable: No source is bound or it reports no format
            FormatNegotiationFailed: The native format can't be converted
        """
        if self.source is None:
            raise DeviceUnavailable("No audio input source is bound")
        source_format = self.source.source_format
        if source_format is None:
            raise DeviceUnavailable("Audio input source has no available input format")

        self._converter = FormatConverter(source_format, target_rate=self.sample_rate)
        self._buffer.clear()
        with self._sequence_lock:
            self._sequence = 0
        self._running.set()
        logger.info(
            f"Ingestion started: {source_format.sample_rate} Hz x{source_format.channels} "
            f"{source_format.dtype} -> {self.sample_rate} Hz mono, chunk every {self.chunk_interval}s"
        )

    def ingest(self, block: Union[AudioBlock, np.ndarray]) -> Optional[AudioChunk]:
        """
        Convert and append one native block.

        Args:
            block: Samples in the source's native format

        Returns:
            The chunk emitted by this block, if its cadence boundary was crossed
        """
        converter = self._converter
        if not self._running.is_set() or converter is None:
            logger.debug("Dropping audio block: ingestion is not running")
            return None

        samples = converter.convert(block)
        taken = self._buffer.append_and_take_chunk(samples, self.cadence_samples)
        if taken is None:
            return None

        snapshot, new_start = taken
        with self._sequence_lock:
            self._sequence += 1
            sequence = self._sequence
        chunk = AudioChunk(
            samples=snapshot,
            sequence=sequence,
            sample_rate=self.sample_rate,
            new_samples_start=new_start,
            created_at=time.time(),
        )
        logger.debug(f"Emitting chunk #{sequence}: {chunk.duration:.2f}s cumulative")

        if self.on_chunk is not None:
            try:
                self.on_chunk(chunk)
            except Exception as e:
                logger.error(f"Chunk consumer failed on chunk #{sequence}: {e}", exc_info=True)
        return chunk

    def stop(self) -> np.ndarray:
        """
        Stop the recording and return every captured sample.

        Safe to call when nothing was captured or when not running; the
        result is then an empty array.
        """
        self._running.clear()
        samples = self._buffer.drain()
        if self._converter is not None:
            self._converter.reset()
        logger.info(f"Ingestion stopped: {samples.size} samples ({samples.size / self.sample_rate:.2f}s)")
        return samples

    def clear(self) -> None:
        """Discard the captured audio but keep recording."""
        self._buffer.clear()
        logger.info("Ingestion buffer cleared")
