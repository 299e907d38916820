"""Unit tests for the speech-band spectral detector."""
import numpy as np
import pytest
from speechgate.audio.dsp.features import band_energy_ratio, power_spectrum
from speechgate.audio.dsp.spectral_vad import SpectralDetector
from speechgate.audio.params import SpectralParameters

# Telephone preset windows are 512 samples (32 ms); keep every part a whole number of windows
WINDOW_SECONDS = 512 / 16000


@pytest.fixture
def telephone():
    return SpectralDetector(SpectralParameters.preset("telephone_quality"))


@pytest.fixture
def wideband():
    return SpectralDetector(SpectralParameters.preset("wideband_quality"))


def padded(tone, silence, freq, amplitude=0.5):
    return np.concatenate([
        silence(25 * WINDOW_SECONDS),
        tone(40 * WINDOW_SECONDS, amplitude=amplitude, freq=freq),
        silence(25 * WINDOW_SECONDS),
    ])


def test_power_spectrum_peak():
    """Test that a pure tone's power peaks in its own bin."""
    t = np.arange(512) / 16000
    window = np.sin(2 * np.pi * 1000.0 * t)
    power = power_spectrum(window, 512)
    freqs = np.fft.rfftfreq(512, 1 / 16000)

    assert power.size == 257
    assert freqs[np.argmax(power)] == pytest.approx(1000.0, abs=31.25)
    assert band_energy_ratio(power, freqs, 900.0, 1100.0) > 0.95


def test_power_spectrum_zero_pads_short_window():
    """Test that a window shorter than fft_size is zero-padded."""
    assert power_spectrum(np.ones(100), 512).size == 257


def test_speech_band_tone_detected(telephone, tone, silence):
    """Test that a 440 Hz tone inside 300-3400 Hz is speech."""
    segments = telephone.detect(padded(tone, silence, 440.0))

    assert len(segments) == 1
    assert segments[0].start_time == pytest.approx(0.8, abs=WINDOW_SECONDS)
    assert segments[0].end_time == pytest.approx(2.08, abs=WINDOW_SECONDS)


def test_hum_rejected(telephone, tone, silence):
    """Test that loud 60 Hz hum is outside the speech band."""
    assert telephone.detect(padded(tone, silence, 60.0)) == []


def test_band_depends_on_preset(telephone, wideband, tone, silence):
    """Test that a 6 kHz tone is speech for wideband but not for telephone audio."""
    samples = padded(tone, silence, 6000.0)
    assert telephone.detect(samples) == []
    assert len(wideband.detect(samples)) == 1


def test_rms_floor(telephone, tone, silence):
    """Test that an in-band tone quieter than rms_floor is silence."""
    assert telephone.detect(padded(tone, silence, 440.0, amplitude=0.001)) == []

    no_floor = telephone.params.replace(rms_floor=0.0)
    assert len(telephone.detect(padded(tone, silence, 440.0, amplitude=0.001), no_floor)) == 1


def test_silence(telephone, silence):
    """Test that digital silence is never speech."""
    assert telephone.detect(silence(1.0)) == []
