"""Adaptive voice activity detection: tracked noise floor plus zero-crossing rate."""
import numpy as np

from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.features import frame_rms, frame_signal, zero_crossing_rate
from speechgate.audio.params import AdaptiveParameters

# Lowest dynamic threshold, keeps digital silence from dividing by zero
MIN_THRESHOLD = 1e-4

# Zero-crossing rates (crossings per sample) typical of voiced and fricative speech.
# White noise sits near 0.5, DC and hum near 0.
ZCR_SPEECH_LOW = 0.02
ZCR_SPEECH_HIGH = 0.30
ZCR_NOISE = 0.5


def zcr_contribution(zcr: float) -> float:
    """
    Map a zero-crossing rate to a speech likelihood in [0, 1].

    1.0 inside the speech band, linear ramps down to 0 at no crossings
    and at the white-noise rate.
    """
    if zcr <= 0.0:
        return 0.0
    if zcr < ZCR_SPEECH_LOW:
        return zcr / ZCR_SPEECH_LOW
    if zcr <= ZCR_SPEECH_HIGH:
        return 1.0
    return max(0.0, 1.0 - (zcr - ZCR_SPEECH_HIGH) / (ZCR_NOISE - ZCR_SPEECH_HIGH))


def speech_score(rms: float, threshold: float, zcr: float, zcr_weight: float) -> float:
    """Combined score; a window is speech when this exceeds 1.0."""
    energy_term = rms / max(threshold, MIN_THRESHOLD)
    return (1.0 - zcr_weight) * energy_term + zcr_weight * zcr_contribution(zcr)


class AdaptiveDetector(SpeechDetector[AdaptiveParameters]):
    """
    Dynamic threshold detector.

    The noise floor starts at the first window's RMS and is smoothed with
    every window that stays below the current dynamic threshold
    (``noise_floor * threshold_multiplier``). RMS alone lets broadband noise
    through, so the energy ratio is blended with a zero-crossing term that
    favours speech-like crossing rates.
    """

    family = "adaptive"
    parameters_type = AdaptiveParameters

    def classify(self, samples: np.ndarray, params: AdaptiveParameters) -> np.ndarray:
        window_samples = params.window_samples(self.sample_rate)
        windows = frame_signal(samples, window_samples)
        levels = frame_rms(samples, window_samples)
        timeline = np.zeros(len(windows), dtype=bool)
        if not windows:
            return timeline

        alpha = params.noise_smoothing
        noise_floor = float(levels[0])

        for i, window in enumerate(windows):
            rms = float(levels[i])
            threshold = max(noise_floor * params.threshold_multiplier, MIN_THRESHOLD)
            score = speech_score(rms, threshold, zero_crossing_rate(window), params.zcr_weight)
            timeline[i] = score > 1.0

            if rms < threshold:
                noise_floor = alpha * rms + (1.0 - alpha) * noise_floor

        return timeline
