"""Detector registry and algorithm selection.

A detector is chosen either by family (``energy``, ``adaptive``,
``spectral``) plus a preset name or parameter object, or by one of the
combined algorithm names used in settings, such as ``spectral_telephone``.
"""
from typing import Optional, Union

from speechgate.audio.dsp.adaptive_vad import AdaptiveDetector
from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.energy_vad import EnergyDetector
from speechgate.audio.dsp.features import is_silence
from speechgate.audio.dsp.segments import extract_audio
from speechgate.audio.dsp.spectral_vad import SpectralDetector
from speechgate.audio.models import SpeechSegment
from speechgate.audio.params import DetectionParameters
from speechgate.core.errors import InvalidParameters

DETECTORS = {
    "energy": EnergyDetector,
    "adaptive": AdaptiveDetector,
    "spectral": SpectralDetector,
}

_FAMILY_ALIASES = {
    "standard": "energy",
    "rms": "energy",
    "fft": "spectral",
}

# Algorithm name -> (family, preset)
ALGORITHMS = {
    "spectral_telephone": ("spectral", "telephone_quality"),
    "spectral_wideband": ("spectral", "wideband_quality"),
    "spectral_default": ("spectral", "default"),
    "adaptive_low_quality": ("adaptive", "telephone_quality"),
    "adaptive_aggressive": ("adaptive", "aggressive"),
    "standard_low_quality": ("energy", "telephone_quality"),
    "standard_high_quality": ("energy", "wideband_quality"),
}

DEFAULT_ALGORITHM = "spectral_telephone"


def normalize_family(family: str) -> str:
    key = family.strip().lower()
    key = _FAMILY_ALIASES.get(key, key)
    if key not in DETECTORS:
        raise InvalidParameters(
            f"Unknown detector family '{family}'. Available: {', '.join(DETECTORS)}"
        )
    return key


def create_detector(
    family: str,
    params: Union[str, DetectionParameters, None] = None,
    sample_rate: Optional[int] = None,
) -> SpeechDetector:
    """
    Build a detector.

    Args:
        family: ``energy`` (alias ``standard``), ``adaptive`` or ``spectral``
        params: Preset name, parameter object, or None for the family default
        sample_rate: Rate of the samples the detector will see

    Returns:
        Configured detector

    Raises:
        InvalidParameters: Unknown family/preset, or parameters of the wrong family
    """
    detector_cls = DETECTORS[normalize_family(family)]
    if params is None or isinstance(params, str):
        params = detector_cls.parameters_type.preset(params or "default")
    return detector_cls(params, sample_rate=sample_rate)


def detector_for_algorithm(name: Optional[str] = None, sample_rate: Optional[int] = None) -> SpeechDetector:
    """Build the detector behind a combined algorithm name such as ``spectral_telephone``."""
    key = (name or DEFAULT_ALGORITHM).strip().lower()
    if key not in ALGORITHMS:
        # "<family>_<preset>" spellings outside the fixed list, e.g. "energy_aggressive"
        family, _, preset = key.partition("_")
        if not preset:
            raise InvalidParameters(
                f"Unknown VAD algorithm '{name}'. Available: {', '.join(ALGORITHMS)}"
            )
        return create_detector(family, preset, sample_rate=sample_rate)
    family, preset = ALGORITHMS[key]
    return create_detector(family, preset, sample_rate=sample_rate)


def speech_ratio(segments: list[SpeechSegment], total_duration: float) -> float:
    """Share of ``total_duration`` covered by speech segments, in [0..1]."""
    if total_duration <= 0:
        return 0.0
    covered = sum(segment.duration for segment in segments)
    return min(1.0, covered / total_duration)


__all__ = [
    "ALGORITHMS",
    "DEFAULT_ALGORITHM",
    "DETECTORS",
    "SpeechDetector",
    "create_detector",
    "detector_for_algorithm",
    "extract_audio",
    "is_silence",
    "speech_ratio",
]
