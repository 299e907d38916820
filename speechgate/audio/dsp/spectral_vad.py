"""Spectral voice activity detection based on speech-band energy concentration."""
import numpy as np

from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.features import band_energy_ratio, frame_signal, power_spectrum, window_rms
from speechgate.audio.params import SpectralParameters


class SpectralDetector(SpeechDetector[SpectralParameters]):
    """
    Classifies a window as speech when enough of its power lies in the speech band.

    Each window is Hann-weighted and transformed with an ``fft_size``-point
    FFT (zero-padded or truncated). The telephone preset narrows the band to
    300-3400 Hz, the wideband preset widens it to 80-8000 Hz. Windows below
    ``rms_floor`` are silence whatever their spectrum looks like.
    """

    family = "spectral"
    parameters_type = SpectralParameters

    def classify(self, samples: np.ndarray, params: SpectralParameters) -> np.ndarray:
        windows = frame_signal(samples, params.window_samples(self.sample_rate))
        freqs = np.fft.rfftfreq(params.fft_size, 1.0 / self.sample_rate)
        timeline = np.zeros(len(windows), dtype=bool)

        for i, window in enumerate(windows):
            rms = window_rms(window)
            if rms == 0.0 or rms < params.rms_floor:
                continue
            power = power_spectrum(window, params.fft_size)
            ratio = band_energy_ratio(power, freqs, params.speech_freq_min, params.speech_freq_max)
            timeline[i] = ratio >= params.speech_energy_ratio

        return timeline
