"""Timeline-to-segments assembly shared by every detector.

A detector only decides, window by window, whether a window is speech. This
module turns that boolean timeline into speech segments: short silences
inside an utterance are bridged, and utterances that stay too short are
dropped. All detector families go through ``assemble_segments`` so they
merge and discard in exactly the same way.
"""
from typing import Sequence

import numpy as np

from speechgate.audio.models import SpeechSegment

# Float tolerance when comparing durations built from sample counts
_TOLERANCE = 1e-9


def assemble_segments(
    timeline: Sequence[bool],
    window_samples: int,
    total_samples: int,
    sample_rate: int,
    min_speech_duration: float,
    min_silence_duration: float,
) -> list[SpeechSegment]:
    """
    Convert a per-window speech/silence timeline into speech segments.

    Window ``i`` covers samples ``[i * window_samples, (i + 1) * window_samples)``,
    clipped to ``total_samples`` for the trailing partial window.

    Args:
        timeline: One boolean per window, True for speech
        window_samples: Window length in samples
        total_samples: Number of samples the timeline was computed from
        sample_rate: Sample rate used to convert sample positions to seconds
        min_speech_duration: Shorter candidate segments are discarded (seconds)
        min_silence_duration: Silence runs at least this long close a segment (seconds)

    Returns:
        Segments ordered by start time, never overlapping
    """
    if window_samples <= 0 or sample_rate <= 0 or total_samples <= 0:
        return []

    segments: list[SpeechSegment] = []

    def window_bounds(index: int) -> tuple[float, float]:
        start = index * window_samples
        end = min(start + window_samples, total_samples)
        return start / sample_rate, end / sample_rate

    def close(start: float, end: float) -> None:
        if end - start + _TOLERANCE >= min_speech_duration:
            segments.append(SpeechSegment(start_time=start, end_time=end))

    seg_start = None  # start of the open candidate
    seg_end = 0.0  # end of its last speech window
    silence_start = None  # start of the current silence run inside the candidate

    for index, is_speech in enumerate(timeline):
        if index * window_samples >= total_samples:
            break
        w_start, w_end = window_bounds(index)

        if is_speech:
            if seg_start is None:
                seg_start = w_start
            seg_end = w_end
            silence_start = None
            continue

        if seg_start is None:
            continue
        if silence_start is None:
            silence_start = w_start
        if w_end - silence_start + _TOLERANCE >= min_silence_duration:
            close(seg_start, seg_end)
            seg_start = None
            silence_start = None

    if seg_start is not None:
        close(seg_start, seg_end)

    return segments


def extract_audio(segment: SpeechSegment, samples, sample_rate: int) -> np.ndarray:
    """
    Copy the samples a segment covers.

    Bounds are clamped to the buffer, so a segment that runs past the end of
    ``samples`` yields the available tail (or an empty array).
    """
    data = np.asarray(samples)
    start = min(max(segment.start_sample(sample_rate), 0), data.shape[0])
    end = min(max(segment.end_sample(sample_rate), start), data.shape[0])
    return data[start:end].copy()
