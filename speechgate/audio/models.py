"""Audio data models and structures."""
from dataclasses import dataclass, field
from typing import Optional
import numpy as np
import time


SUPPORTED_DTYPES = ("float32", "float64", "int16", "int32", "uint8")


@dataclass(frozen=True)
class SourceFormat:
    """Native format delivered by an audio capture collaborator."""
    sample_rate: int
    channels: int = 1
    dtype: str = "float32"


@dataclass
class AudioBlock:
    """Represents one block of native-format audio pushed by a source."""
    samples: np.ndarray  # 1-D interleaved or 2-D (frames, channels)
    sample_rate: int
    channels: int = 1
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        """Validate block layout."""
        if self.samples.ndim not in (1, 2):
            raise ValueError(f"Expected 1-D or 2-D samples, got shape {self.samples.shape}")
        if self.samples.ndim == 2 and self.samples.shape[1] != self.channels:
            raise ValueError(
                f"Block has {self.samples.shape[1]} channels, expected {self.channels}"
            )

    @property
    def frame_count(self) -> int:
        """Number of sample frames (samples per channel) in the block."""
        if self.samples.ndim == 2:
            return self.samples.shape[0]
        return self.samples.size // max(self.channels, 1)


@dataclass(frozen=True)
class SpeechSegment:
    """One detected speech interval, in seconds from the start of the audio."""
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def start_sample(self, sample_rate: int) -> int:
        return int(round(self.start_time * sample_rate))

    def end_sample(self, sample_rate: int) -> int:
        return int(round(self.end_time * sample_rate))

    def to_dict(self) -> dict:
        return {
            "start_time": round(self.start_time, 4),
            "end_time": round(self.end_time, 4),
            "duration": round(self.duration, 4),
        }


@dataclass
class AudioChunk:
    """Cumulative chunk: every canonical sample captured since recording started."""
    samples: np.ndarray  # float32 mono at sample_rate
    sequence: int
    sample_rate: int
    new_samples_start: int  # index of the first sample not present in the previous chunk
    created_at: float = field(default_factory=time.time)

    @property
    def end_time(self) -> float:
        """Position of the last sample, in seconds from the start of the recording."""
        return len(self.samples) / self.sample_rate

    @property
    def duration(self) -> float:
        return self.end_time

    @property
    def new_samples(self) -> np.ndarray:
        """Samples added since the previous chunk (a view, not a copy)."""
        return self.samples[self.new_samples_start:]


@dataclass
class StreamState:
    """Tracks state for an active live capture stream."""
    stream_id: str
    created_at: float
    algorithm: str
    chunk_count: int = 0
    last_chunk_time: Optional[float] = None
    latest_segments: list = field(default_factory=list)

    def update_segments(self, segments: list) -> None:
        """Record the segments detected on the latest chunk."""
        self.latest_segments = list(segments)
        self.chunk_count += 1
        self.last_chunk_time = time.time()
