"""Unit tests for the adaptive noise-floor detector."""
import numpy as np
import pytest
from speechgate.audio.dsp.adaptive_vad import (
    MIN_THRESHOLD,
    AdaptiveDetector,
    speech_score,
    zcr_contribution,
)
from speechgate.audio.params import AdaptiveParameters


def test_zcr_contribution_shape():
    """Test the zero-crossing likelihood ramp."""
    assert zcr_contribution(0.0) == 0.0
    assert zcr_contribution(0.01) == pytest.approx(0.5)
    assert zcr_contribution(0.1) == 1.0
    assert zcr_contribution(0.3) == 1.0
    assert zcr_contribution(0.4) == pytest.approx(0.5)
    assert zcr_contribution(0.5) == 0.0
    assert zcr_contribution(0.9) == 0.0


def test_speech_score_blend():
    """Test the energy and zero-crossing blend."""
    # Energy exactly at threshold, speech-like ZCR
    assert speech_score(0.1, 0.1, 0.1, 0.3) == pytest.approx(1.0)
    # ZCR alone never reaches 1 when zcr_weight < 1
    assert speech_score(0.0, 0.1, 0.1, 0.3) < 1.0
    # Threshold floor avoids division by zero
    assert speech_score(MIN_THRESHOLD, 0.0, 0.0, 0.0) == pytest.approx(1.0)


def test_tone_after_silence(tone, silence):
    """Test that a tone following silence is detected."""
    detector = AdaptiveDetector(AdaptiveParameters.preset("default"))
    samples = np.concatenate([silence(0.6), tone(1.2), silence(0.9)])
    segments = detector.detect(samples)

    assert len(segments) == 1
    assert segments[0].start_time == pytest.approx(0.6, abs=0.05)
    assert segments[0].end_time == pytest.approx(1.8, abs=0.05)


def test_steady_noise_is_not_speech():
    """Test that steady white noise becomes the noise floor."""
    rng = np.random.default_rng(3)
    noise = (0.02 * rng.standard_normal(16000 * 2)).astype(np.float32)
    segments = AdaptiveDetector(AdaptiveParameters.preset("default")).detect(noise)
    assert segments == []


def test_tone_over_noise(tone):
    """Test that a loud tone over steady noise is found."""
    rng = np.random.default_rng(5)
    samples = (0.005 * rng.standard_normal(16000 * 3)).astype(np.float32)
    samples[16000:32000] += tone(1.0)
    segments = AdaptiveDetector(AdaptiveParameters.preset("default")).detect(samples)

    assert len(segments) == 1
    assert segments[0].start_time == pytest.approx(1.0, abs=0.05)
    assert segments[0].end_time == pytest.approx(2.0, abs=0.05)


def test_digital_silence(silence):
    """Test that all-zero input stays silent with the threshold floor."""
    assert AdaptiveDetector().detect(silence(1.0)) == []
