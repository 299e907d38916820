"""Unit tests for detector selection and shared helpers."""
import numpy as np
import pytest
from speechgate.audio.dsp.adaptive_vad import AdaptiveDetector
from speechgate.audio.dsp.energy_vad import EnergyDetector
from speechgate.audio.dsp.features import frame_rms, frame_signal, window_rms, zero_crossing_rate
from speechgate.audio.dsp.spectral_vad import SpectralDetector
from speechgate.audio.dsp.vad import (
    ALGORITHMS,
    create_detector,
    detector_for_algorithm,
    is_silence,
    speech_ratio,
)
from speechgate.audio.models import SpeechSegment
from speechgate.audio.params import EnergyParameters, SpectralParameters
from speechgate.core.errors import InvalidParameters


def test_create_detector_families():
    """Test family names and aliases."""
    assert isinstance(create_detector("energy"), EnergyDetector)
    assert isinstance(create_detector("standard"), EnergyDetector)
    assert isinstance(create_detector("Adaptive"), AdaptiveDetector)
    assert isinstance(create_detector("spectral"), SpectralDetector)


def test_create_detector_with_preset_and_params():
    """Test building from a preset name or an explicit parameter object."""
    detector = create_detector("energy", "aggressive")
    assert detector.params == EnergyParameters.preset("aggressive")

    custom = SpectralParameters.preset().replace(speech_energy_ratio=0.7)
    assert create_detector("spectral", custom).params is custom


def test_create_detector_errors():
    """Test unknown family, unknown preset and mismatched parameters."""
    with pytest.raises(InvalidParameters):
        create_detector("neural")
    with pytest.raises(InvalidParameters):
        create_detector("energy", "studio")
    with pytest.raises(InvalidParameters):
        create_detector("energy", SpectralParameters.preset())


@pytest.mark.parametrize("name", list(ALGORITHMS))
def test_every_algorithm_builds(name):
    """Test that every combined algorithm name maps to a detector."""
    family, preset = ALGORITHMS[name]
    detector = detector_for_algorithm(name)
    assert detector.family == family
    assert detector.params == detector.parameters_type.preset(preset)


def test_default_algorithm():
    """Test that no name selects the telephone spectral detector."""
    detector = detector_for_algorithm(None)
    assert isinstance(detector, SpectralDetector)
    assert detector.params == SpectralParameters.preset("telephone_quality")


def test_family_preset_spelling():
    """Test that '<family>_<preset>' names outside the fixed list also work."""
    detector = detector_for_algorithm("energy_very_sensitive")
    assert detector.params == EnergyParameters.preset("very_sensitive")


@pytest.mark.parametrize("name", ["bogus", "spectral_studio", "neural_default"])
def test_unknown_algorithm(name):
    """Test that unknown algorithm names raise InvalidParameters."""
    with pytest.raises(InvalidParameters):
        detector_for_algorithm(name)


def test_is_silence(tone, silence):
    """Test the whole-buffer silence check."""
    assert is_silence(silence(0.5))
    assert is_silence(np.zeros(0, dtype=np.float32))
    assert is_silence(tone(0.5, amplitude=0.005))
    assert not is_silence(tone(0.5, amplitude=0.5))
    assert not is_silence(tone(0.5, amplitude=0.005), threshold=0.001)


def test_speech_ratio():
    """Test the share of audio covered by speech."""
    segments = [SpeechSegment(0.0, 1.0), SpeechSegment(2.0, 2.5)]
    assert speech_ratio(segments, 3.0) == pytest.approx(0.5)
    assert speech_ratio([], 3.0) == 0.0
    assert speech_ratio(segments, 0.0) == 0.0


def test_frame_signal_partial_tail():
    """Test that framing keeps a short trailing window."""
    windows = frame_signal(np.arange(10, dtype=np.float32), 4)
    assert [w.size for w in windows] == [4, 4, 2]
    assert frame_signal(np.zeros(0, dtype=np.float32), 4) == []


def test_window_features(tone):
    """Test RMS and zero-crossing rate on a known tone."""
    signal = tone(1.0, amplitude=0.5, freq=440.0)
    assert window_rms(signal) == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)
    assert zero_crossing_rate(signal) == pytest.approx(880 / 16000, rel=0.02)
    assert window_rms(np.zeros(0)) == 0.0
    assert zero_crossing_rate(np.ones(1)) == 0.0


def test_frame_rms_matches_per_window_rms():
    """Test that vectorised RMS agrees with per-window RMS, partial tail included."""
    rng = np.random.default_rng(2)
    signal = rng.uniform(-1, 1, 1000).astype(np.float32)
    expected = [window_rms(w) for w in frame_signal(signal, 160)]

    levels = frame_rms(signal, 160)
    assert levels.size == 7
    np.testing.assert_allclose(levels, expected, rtol=1e-12)
    assert frame_rms(signal[:100], 160).size == 1
    assert frame_rms(np.zeros(0, dtype=np.float32), 160).size == 0
