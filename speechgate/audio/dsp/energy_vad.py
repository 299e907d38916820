"""Energy-based voice activity detection with a fixed RMS threshold."""
import numpy as np

from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.features import frame_rms
from speechgate.audio.params import EnergyParameters


class EnergyDetector(SpeechDetector[EnergyParameters]):
    """
    Classifies each window as speech when its RMS reaches ``rms_threshold``.

    Deterministic and stateless between windows; a trailing partial window
    is classified from the samples it has.
    """

    family = "energy"
    parameters_type = EnergyParameters

    def classify(self, samples: np.ndarray, params: EnergyParameters) -> np.ndarray:
        rms = frame_rms(samples, params.window_samples(self.sample_rate))
        return rms >= params.rms_threshold
