"""Detection parameters and named presets for each detector family.

Every parameter object is a frozen dataclass validated on construction, so a
detector never has to re-check its configuration while it runs. Presets are
plain keyword dictionaries turned into parameter objects on lookup.
"""
import math
import re
from dataclasses import dataclass, asdict, replace as dataclass_replace
from typing import Dict, Type, TypeVar

from speechgate.core.errors import InvalidParameters

P = TypeVar("P", bound="DetectionParameters")

PRESET_NAMES = (
    "default",
    "telephone_quality",
    "wideband_quality",
    "aggressive",
    "conservative",
    "very_sensitive",
)

_PRESET_ALIASES = {
    "low_quality": "telephone_quality",
    "telephone": "telephone_quality",
    "high_quality": "wideband_quality",
    "wideband": "wideband_quality",
}


def normalize_preset_name(name: str) -> str:
    """Map ``telephoneQuality``, ``telephone-quality`` or ``low_quality`` to ``telephone_quality``."""
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name.strip())
    snake = re.sub(r"[\s\-]+", "_", snake).lower()
    return _PRESET_ALIASES.get(snake, snake)


@dataclass(frozen=True)
class DetectionParameters:
    """Fields shared by every detector family (all durations in seconds)."""
    window_size: float
    min_speech_duration: float
    min_silence_duration: float

    def __post_init__(self):
        self._check(0 < self.window_size < math.inf, "window_size must be finite and > 0")
        self._check(0 <= self.min_speech_duration < math.inf, "min_speech_duration must be finite and >= 0")
        self._check(0 <= self.min_silence_duration < math.inf, "min_silence_duration must be finite and >= 0")

    def _check(self, condition: bool, message: str) -> None:
        # NaN fails every comparison, so it is rejected here too
        if not condition:
            raise InvalidParameters(f"{type(self).__name__}: {message}")

    @classmethod
    def presets(cls) -> Dict[str, dict]:
        return {}

    @classmethod
    def preset(cls: Type[P], name: str = "default") -> P:
        """Build the named preset for this family."""
        key = normalize_preset_name(name)
        values = cls.presets().get(key)
        if values is None:
            raise InvalidParameters(
                f"Unknown {cls.__name__} preset '{name}'. Available: {', '.join(PRESET_NAMES)}"
            )
        return cls(**values)

    def replace(self: P, **changes) -> P:
        """Return a validated copy with some fields changed."""
        try:
            return dataclass_replace(self, **changes)
        except TypeError as e:
            raise InvalidParameters(str(e)) from e

    def window_samples(self, sample_rate: int) -> int:
        """Window length in samples (never less than one)."""
        return max(1, int(round(self.window_size * sample_rate)))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class EnergyParameters(DetectionParameters):
    """Fixed RMS threshold detector."""
    rms_threshold: float = 0.02

    def __post_init__(self):
        super().__post_init__()
        self._check(self.rms_threshold > 0, "rms_threshold must be > 0")

    @classmethod
    def presets(cls) -> Dict[str, dict]:
        return _ENERGY_PRESETS


@dataclass(frozen=True)
class AdaptiveParameters(DetectionParameters):
    """Noise-floor tracking detector blended with zero-crossing rate."""
    threshold_multiplier: float = 2.5
    zcr_weight: float = 0.3
    noise_smoothing: float = 0.05  # alpha of the noise floor moving average

    def __post_init__(self):
        super().__post_init__()
        self._check(self.threshold_multiplier > 0, "threshold_multiplier must be > 0")
        self._check(0.0 <= self.zcr_weight <= 1.0, "zcr_weight must be within [0, 1]")
        self._check(0.0 < self.noise_smoothing <= 1.0, "noise_smoothing must be within (0, 1]")

    @classmethod
    def presets(cls) -> Dict[str, dict]:
        return _ADAPTIVE_PRESETS


@dataclass(frozen=True)
class SpectralParameters(DetectionParameters):
    """Speech-band energy ratio detector."""
    fft_size: int = 512
    speech_freq_min: float = 100.0
    speech_freq_max: float = 4000.0
    speech_energy_ratio: float = 0.5
    rms_floor: float = 0.002  # windows quieter than this are silence, 0 disables

    def __post_init__(self):
        super().__post_init__()
        fft_size = self.fft_size
        self._check(
            isinstance(fft_size, int) and fft_size >= 16 and fft_size & (fft_size - 1) == 0,
            "fft_size must be a power of two >= 16",
        )
        self._check(self.speech_freq_min >= 0, "speech_freq_min must be >= 0")
        self._check(
            self.speech_freq_max > self.speech_freq_min,
            "speech_freq_max must be greater than speech_freq_min",
        )
        self._check(
            0.0 <= self.speech_energy_ratio <= 1.0, "speech_energy_ratio must be within [0, 1]"
        )
        self._check(self.rms_floor >= 0 and math.isfinite(self.rms_floor), "rms_floor must be >= 0")

    @classmethod
    def presets(cls) -> Dict[str, dict]:
        return _SPECTRAL_PRESETS


def _energy(window, speech, silence, threshold):
    return dict(
        window_size=window,
        min_speech_duration=speech,
        min_silence_duration=silence,
        rms_threshold=threshold,
    )


def _adaptive(window, speech, silence, multiplier, zcr_weight):
    return dict(
        window_size=window,
        min_speech_duration=speech,
        min_silence_duration=silence,
        threshold_multiplier=multiplier,
        zcr_weight=zcr_weight,
    )


def _spectral(fft_size, speech, silence, band, ratio, rms_floor=0.002):
    # One FFT frame per window at the canonical rate
    return dict(
        window_size=fft_size / 16000.0,
        min_speech_duration=speech,
        min_silence_duration=silence,
        fft_size=fft_size,
        speech_freq_min=band[0],
        speech_freq_max=band[1],
        speech_energy_ratio=ratio,
        rms_floor=rms_floor,
    )


_ENERGY_PRESETS = {
    "default": _energy(0.05, 0.3, 0.5, 0.02),
    "telephone_quality": _energy(0.05, 0.3, 0.8, 0.01),
    "wideband_quality": _energy(0.03, 0.25, 0.4, 0.03),
    "aggressive": _energy(0.02, 0.1, 0.1, 0.01),
    "conservative": _energy(0.1, 1.0, 1.0, 0.03),
    "very_sensitive": _energy(0.05, 0.2, 0.3, 0.005),
}

_ADAPTIVE_PRESETS = {
    "default": _adaptive(0.03, 0.3, 0.5, 2.5, 0.3),
    "telephone_quality": _adaptive(0.03, 0.25, 0.7, 2.0, 0.4),
    "wideband_quality": _adaptive(0.02, 0.25, 0.4, 3.0, 0.2),
    "aggressive": _adaptive(0.02, 0.1, 0.15, 1.8, 0.3),
    "conservative": _adaptive(0.05, 1.0, 1.0, 3.5, 0.2),
    "very_sensitive": _adaptive(0.03, 0.2, 0.3, 1.5, 0.3),
}

_SPECTRAL_PRESETS = {
    "default": _spectral(512, 0.3, 0.5, (100.0, 4000.0), 0.5),
    "telephone_quality": _spectral(512, 0.25, 0.7, (300.0, 3400.0), 0.4),
    "wideband_quality": _spectral(1024, 0.3, 0.5, (80.0, 8000.0), 0.6),
    "aggressive": _spectral(256, 0.1, 0.15, (100.0, 4000.0), 0.4),
    "conservative": _spectral(1024, 1.0, 1.0, (100.0, 4000.0), 0.6),
    "very_sensitive": _spectral(512, 0.2, 0.3, (80.0, 4000.0), 0.3, rms_floor=0.001),
}

PARAMETER_TYPES = {
    "energy": EnergyParameters,
    "adaptive": AdaptiveParameters,
    "spectral": SpectralParameters,
}
