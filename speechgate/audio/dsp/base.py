"""Common detector interface."""
import time
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

import numpy as np

from speechgate.audio.dsp.segments import assemble_segments, extract_audio
from speechgate.audio.models import SpeechSegment
from speechgate.audio.params import DetectionParameters
from speechgate.core.config import settings
from speechgate.core.errors import InvalidParameters
from speechgate.core.logging import logger

P = TypeVar("P", bound=DetectionParameters)


def as_mono_float(samples) -> np.ndarray:
    """Coerce detector input to a 1-D float32 array (first channel of 2-D input)."""
    data = np.asarray(samples)
    if data.ndim == 0:
        data = data.reshape(1)
    elif data.ndim > 1:
        data = data.reshape(data.shape[0], -1)[:, 0]
    if not np.issubdtype(data.dtype, np.floating):
        data = data.astype(np.float32)
    return np.nan_to_num(data.astype(np.float32, copy=False), nan=0.0, posinf=1.0, neginf=-1.0)


class SpeechDetector(ABC, Generic[P]):
    """
    Base class for voice activity detectors.

    Subclasses classify windows; window size, segment merging and the
    minimum-duration policy are handled here and in ``assemble_segments``.
    """

    #: Family name used by the detector registry
    family: str = ""
    #: Parameter class accepted by this detector
    parameters_type: type = DetectionParameters

    def __init__(self, params: Optional[P] = None, sample_rate: Optional[int] = None):
        if sample_rate is None:
            sample_rate = settings.sample_rate
        if sample_rate <= 0:
            raise InvalidParameters(f"sample_rate must be > 0, got {sample_rate}")
        self.params: P = self._check_params(params if params is not None else self.parameters_type.preset())
        self.sample_rate = sample_rate

    def _check_params(self, params) -> P:
        if not isinstance(params, self.parameters_type):
            raise InvalidParameters(
                f"{type(self).__name__} expects {self.parameters_type.__name__}, got {type(params).__name__}"
            )
        return params

    def detect(self, samples, params: Optional[P] = None) -> list[SpeechSegment]:
        """
        Find speech segments in a canonical sample array.

        Args:
            samples: Mono float samples at ``self.sample_rate``
            params: Overrides the detector's parameters for this call

        Returns:
            Speech segments ordered by start time (empty for empty or silent input)
        """
        params = self._check_params(params) if params is not None else self.params
        data = as_mono_float(samples)
        if data.size == 0:
            return []

        start_time = time.perf_counter()
        timeline = self.classify(data, params)
        segments = assemble_segments(
            timeline,
            window_samples=params.window_samples(self.sample_rate),
            total_samples=data.size,
            sample_rate=self.sample_rate,
            min_speech_duration=params.min_speech_duration,
            min_silence_duration=params.min_silence_duration,
        )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if elapsed_ms > settings.detection_timeout_ms:
            logger.warning(
                f"{type(self).__name__} took {elapsed_ms:.1f}ms on {data.size / self.sample_rate:.1f}s of audio"
            )
        logger.debug(f"{type(self).__name__}: {len(segments)} segments in {data.size} samples")
        return segments

    @abstractmethod
    def classify(self, samples: np.ndarray, params: P) -> np.ndarray:
        """Return one boolean per window (True = speech) for non-empty float samples."""

    def extract_audio(self, segment: SpeechSegment, samples) -> np.ndarray:
        """Copy of the samples covered by ``segment``."""
        return extract_audio(segment, samples, self.sample_rate)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(params={self.params!r}, sample_rate={self.sample_rate})"
