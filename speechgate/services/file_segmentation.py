"""One-shot segmentation of complete recordings (file transcription path)."""
import math
from dataclasses import dataclass
from typing import Optional
import numpy as np
from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.segments import extract_audio
from speechgate.audio.dsp.features import is_silence
from speechgate.audio.dsp.vad import detector_for_algorithm
from speechgate.audio.models import SourceFormat, SpeechSegment, SUPPORTED_DTYPES
from speechgate.audio.resample import downmix, extract_channel, resample_linear, to_float
from speechgate.core.config import settings
from speechgate.core.errors import FormatNegotiationFailed, InvalidParameters
from speechgate.core.logging import logger

FILE_SEGMENTATION_MODES = ("vad", "batch")


@dataclass
class SegmentedAudio:
    """Speech segment together with the canonical samples it covers."""
    segment: SpeechSegment
    samples: np.ndarray
    channel: int = 0  # 0 = mono / left speaker, 1 = right speaker

    @property
    def speaker(self) -> str:
        return f"Speaker {self.channel + 1}"

    def to_dict(self) -> dict:
        result = self.segment.to_dict()
        result["channel"] = self.channel
        result["samples"] = int(self.samples.size)
        return result


def to_canonical(
    samples: np.ndarray,
    source_format: SourceFormat,
    channel: Optional[int] = None,
    target_rate: Optional[int] = None,
) -> np.ndarray:
    """
    Convert a complete native-format recording to canonical samples.

    Args:
        samples: Native samples (1-D interleaved or 2-D frames x channels)
        source_format: Format of ``samples``
        channel: Keep only this channel instead of down-mixing
        target_rate: Canonical rate (settings.sample_rate by default)

    Raises:
        FormatNegotiationFailed: Unsupported dtype, rate or channel
    """
    if source_format.dtype not in SUPPORTED_DTYPES:
        raise FormatNegotiationFailed(f"Unsupported sample format '{source_format.dtype}'")
    if source_format.sample_rate <= 0 or source_format.channels <= 0:
        raise FormatNegotiationFailed(
            f"Invalid source format {source_format.sample_rate} Hz x{source_format.channels}"
        )
    if channel is not None and not 0 <= channel < source_format.channels:
        raise FormatNegotiationFailed(
            f"Channel {channel} not present in {source_format.channels}-channel audio"
        )

    data = to_float(np.asarray(samples), source_format.dtype)
    if channel is None:
        mono = downmix(data, source_format.channels)
    else:
        mono = extract_channel(data, channel, source_format.channels)
    return resample_linear(mono, source_format.sample_rate, target_rate or settings.sample_rate)


def _channels_to_process(source_format: SourceFormat, split_channels: bool) -> list[Optional[int]]:
    if split_channels and source_format.channels == 2:
        return [0, 1]
    return [None]

def segment_audio(
    samples: np.ndarray,
    source_format: Optional[SourceFormat] = None,
    detector: Optional[SpeechDetector] = None,
    split_channels: bool = False,
    silence_threshold: Optional[float] = None,
) -> list[SegmentedAudio]:
    """
    Detect speech in a complete recording and cut out each segment's audio.

    With ``split_channels`` and a stereo source, each channel is detected on
    its own (dialogue recordings with one speaker per channel) and results
    are merged by start time. Segment audio that is silent overall is
    dropped since it would only waste a transcription call.

    Args:
        samples: Native samples
        source_format: Format of ``samples`` (canonical float32 mono by default)
        detector: Detector to use (``settings.vad_algorithm`` by default)
        split_channels: Detect stereo channels separately
        silence_threshold: RMS below which segment audio is skipped

    Returns:
        Segments with their audio, ordered by start time
    """
    if source_format is None:
        source_format = SourceFormat(sample_rate=settings.sample_rate, channels=1)
    if detector is None:
        detector = detector_for_algorithm(settings.vad_algorithm)
    if silence_threshold is None:
        silence_threshold = settings.silence_threshold

    results: list[SegmentedAudio] = []
    for channel in _channels_to_process(source_format, split_channels):
        canonical = to_canonical(samples, source_format, channel=channel, target_rate=detector.sample_rate)
        segments = detector.detect(canonical)
        logger.info(
            f"Channel {channel if channel is not None else 'mix'}: "
            f"{len(segments)} speech segments in {canonical.size / detector.sample_rate:.1f}s"
        )
        for segment in segments:
            audio = detector.extract_audio(segment, canonical)
            if is_silence(audio, silence_threshold):
                logger.debug(f"Skipping silent segment {segment.start_time:.2f}s-{segment.end_time:.2f}s")
                continue
            results.append(SegmentedAudio(segment=segment, samples=audio, channel=channel or 0))

    results.sort(key=lambda item: (item.segment.start_time, item.channel))
    return results


def fixed_segments(
    total_samples: int,
    sample_rate: int,
    chunk_seconds: float,
    overlap_seconds: float,
) -> list[SpeechSegment]:
    """
    Cut ``total_samples`` into equal parts that overlap their neighbours.

    Every part starts ``chunk_seconds - overlap_seconds`` after the previous
    one; the last part ends at the end of the audio and may be shorter.

    Raises:
        InvalidParameters: Non-finite or non-positive chunk length, or an
            overlap that is negative or not shorter than the chunk
    """
    if not 0 < chunk_seconds < math.inf:
        raise InvalidParameters(f"batch chunk length must be finite and > 0, got {chunk_seconds}")
    if not 0 <= overlap_seconds < chunk_seconds:
        raise InvalidParameters(
            f"batch overlap must be >= 0 and shorter than the chunk, got {overlap_seconds}"
        )
    if total_samples <= 0:
        return []

    chunk = max(1, int(round(chunk_seconds * sample_rate)))
    step = chunk - int(round(overlap_seconds * sample_rate))
    if step <= 0:
        raise InvalidParameters(f"batch overlap {overlap_seconds}s leaves no step at {sample_rate} Hz")

    segments = []
    start = 0
    while True:
        end = min(start + chunk, total_samples)
        segments.append(SpeechSegment(start_time=start / sample_rate, end_time=end / sample_rate))
        if end >= total_samples:
            return segments
        start += step


def batch_audio(
    samples: np.ndarray,
    source_format: Optional[SourceFormat] = None,
    chunk_seconds: Optional[float] = None,
    overlap_seconds: Optional[float] = None,
    split_channels: bool = False,
    silence_threshold: Optional[float] = None,
    target_rate: Optional[int] = None,
) -> list[SegmentedAudio]:
    """
    Split a complete recording into fixed-length overlapping parts.

    Used instead of speech detection for noisy, low-quality recordings where
    detection cuts too eagerly. Channels are split as in ``segment_audio``
    and silent parts are skipped.
    """
    if source_format is None:
        source_format = SourceFormat(sample_rate=settings.sample_rate, channels=1)
    if chunk_seconds is None:
        chunk_seconds = settings.batch_chunk_seconds
    if overlap_seconds is None:
        overlap_seconds = settings.batch_overlap_seconds
    if silence_threshold is None:
        silence_threshold = settings.silence_threshold
    rate = target_rate or settings.sample_rate

    results: list[SegmentedAudio] = []
    for channel in _channels_to_process(source_format, split_channels):
        canonical = to_canonical(samples, source_format, channel=channel, target_rate=rate)
        parts = fixed_segments(canonical.size, rate, chunk_seconds, overlap_seconds)
        logger.info(
            f"Channel {channel if channel is not None else 'mix'}: {len(parts)} batch parts of "
            f"{chunk_seconds}s ({overlap_seconds}s overlap) in {canonical.size / rate:.1f}s"
        )
        for part in parts:
            audio = extract_audio(part, canonical, rate)
            if is_silence(audio, silence_threshold):
                continue
            results.append(SegmentedAudio(segment=part, samples=audio, channel=channel or 0))

    results.sort(key=lambda item: (item.segment.start_time, item.channel))
    return results


def segment_file(
    samples: np.ndarray,
    source_format: Optional[SourceFormat] = None,
    mode: Optional[str] = None,
    detector: Optional[SpeechDetector] = None,
    split_channels: bool = False,
    silence_threshold: Optional[float] = None,
) -> list[SegmentedAudio]:
    """
    Segment a complete recording with the configured file segmentation mode.

    Args:
        mode: ``vad`` (speech detection) or ``batch`` (fixed overlapping parts);
            ``settings.file_segmentation_mode`` by default

    Raises:
        InvalidParameters: Unknown mode
    """
    mode = (mode or settings.file_segmentation_mode).strip().lower()
    if mode == "vad":
        return segment_audio(samples, source_format, detector, split_channels, silence_threshold)
    if mode == "batch":
        return batch_audio(
            samples,
            source_format,
            split_channels=split_channels,
            silence_threshold=silence_threshold,
            target_rate=detector.sample_rate if detector is not None else None,
        )
    raise InvalidParameters(
        f"Unknown file segmentation mode '{mode}'. Available: {', '.join(FILE_SEGMENTATION_MODES)}"
    )
