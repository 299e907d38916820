"""Behaviour every detector family and preset shares."""
import numpy as np
import pytest
from speechgate.audio.dsp.vad import DETECTORS, create_detector
from speechgate.audio.params import PRESET_NAMES

CASES = [(family, preset) for family in DETECTORS for preset in PRESET_NAMES]


@pytest.fixture(params=CASES, ids=[f"{family}-{preset}" for family, preset in CASES])
def detector(request):
    family, preset = request.param
    return create_detector(family, preset)


def slack(detector):
    # Partial windows at a tone edge may land on either side
    return detector.params.window_size + 1e-6


def test_silence_has_no_speech(detector, silence):
    """Test that digital silence never yields segments."""
    assert detector.detect(silence(3.0)) == []


def test_tone_is_one_segment(detector, tone, silence):
    """Test that a clear tone between silences is one segment at the right place."""
    samples = np.concatenate([silence(1.0), tone(2.0), silence(1.5)])
    segments = detector.detect(samples)

    assert len(segments) == 1
    assert segments[0].start_time == pytest.approx(1.0, abs=slack(detector))
    assert segments[0].end_time == pytest.approx(3.0, abs=slack(detector))


def test_speech_until_end(detector, tone, silence):
    """Test that speech running to the end closes at the end of the audio."""
    samples = np.concatenate([silence(1.0), tone(1.5)])
    segments = detector.detect(samples)

    assert len(segments) == 1
    assert segments[0].start_time == pytest.approx(1.0, abs=slack(detector))
    assert segments[0].end_time == pytest.approx(2.5, abs=slack(detector))
    assert segments[0].end_time <= 2.5


def test_short_gap_is_bridged(detector, tone, silence):
    """Test that a pause shorter than min_silence_duration keeps one segment."""
    params = detector.params
    talk = params.min_speech_duration + 0.5
    samples = np.concatenate([
        silence(1.0),
        tone(talk),
        silence(params.min_silence_duration / 2),
        tone(talk),
        silence(1.5),
    ])
    assert len(detector.detect(samples)) == 1


def test_long_gap_splits(detector, tone, silence):
    """Test that a pause longer than min_silence_duration gives two ordered segments."""
    params = detector.params
    talk = params.min_speech_duration + 0.5
    gap = params.min_silence_duration + 3 * params.window_size
    samples = np.concatenate([silence(1.0), tone(talk), silence(gap), tone(talk), silence(1.5)])
    segments = detector.detect(samples)

    assert len(segments) == 2
    first, second = segments
    assert first.end_time <= second.start_time
    assert second.start_time - first.end_time >= params.min_silence_duration - 1e-6


def test_short_burst_discarded(detector, tone, silence):
    """Test that a burst shorter than min_speech_duration is dropped."""
    params = detector.params
    burst = (params.min_speech_duration - 2 * params.window_size) / 2
    samples = np.concatenate([silence(1.0), tone(burst), silence(1.5)])
    assert detector.detect(samples) == []
