"""Shared signal builders for the detector and pipeline tests."""
import numpy as np
import pytest

SAMPLE_RATE = 16000


def _tone(seconds, amplitude=0.5, freq=440.0, sample_rate=SAMPLE_RATE):
    t = np.arange(int(round(seconds * sample_rate))) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def _silence(seconds, sample_rate=SAMPLE_RATE):
    return np.zeros(int(round(seconds * sample_rate)), dtype=np.float32)


@pytest.fixture
def tone():
    """Factory for a sine tone: tone(seconds, amplitude=0.5, freq=440.0)."""
    return _tone


@pytest.fixture
def silence():
    """Factory for digital silence: silence(seconds)."""
    return _silence


@pytest.fixture
def speech_like(tone, silence):
    """0.5 s silence, 1 s tone at RMS 0.1, 0.5 s silence."""
    return np.concatenate([silence(0.5), tone(1.0, amplitude=0.1 * np.sqrt(2)), silence(0.5)])
