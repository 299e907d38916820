"""Per-window signal features shared by the detectors."""
import numpy as np

# Guards divisions for silent windows
EPSILON = 1e-10


def frame_signal(samples: np.ndarray, window_samples: int) -> list[np.ndarray]:
    """
    Split a signal into consecutive, non-overlapping windows.

    The last window keeps whatever samples remain, so it may be shorter
    than ``window_samples``. Windows are views into ``samples``.

    Args:
        samples: 1-D float signal
        window_samples: Window length in samples

    Returns:
        List of windows (empty for empty input)
    """
    if samples.size == 0 or window_samples <= 0:
        return []
    return [samples[i:i + window_samples] for i in range(0, samples.size, window_samples)]


def window_rms(window: np.ndarray) -> float:
    """Root-mean-square level of a window (0.0 for an empty window)."""
    if window.size == 0:
        return 0.0
    x = window.astype(np.float64)
    return float(np.sqrt(np.mean(x * x)))


def frame_rms(samples: np.ndarray, window_samples: int) -> np.ndarray:
    """
    RMS of every window ``frame_signal`` would produce.

    Full windows are reshaped to (n, window) and reduced in one pass; only
    the trailing partial window is handled on its own.
    """
    if samples.size == 0 or window_samples <= 0:
        return np.zeros(0, dtype=np.float64)

    x = samples.astype(np.float64)
    n = x.size // window_samples
    full = x[: n * window_samples].reshape(n, window_samples)
    rms = np.sqrt(np.mean(full * full, axis=1))

    tail = x[n * window_samples:]
    if tail.size:
        rms = np.append(rms, np.sqrt(np.mean(tail * tail)))
    return rms


def zero_crossing_rate(window: np.ndarray) -> float:
    """
    Zero-crossing rate: sign changes divided by window length.

    Higher ZCR typically indicates noise or unvoiced speech,
    lower ZCR voiced speech or silence.
    """
    if window.size < 2:
        return 0.0

    signs = np.sign(window)
    zero_crossings = np.sum(np.abs(np.diff(signs))) / 2.0
    return float(zero_crossings / window.size)


def power_spectrum(window: np.ndarray, fft_size: int) -> np.ndarray:
    """
    Hann-weighted power spectrum of one window.

    The window is truncated or zero-padded to ``fft_size`` before the FFT.

    Returns:
        Power per rfft bin (``fft_size // 2 + 1`` values)
    """
    segment = window.astype(np.float64)
    if segment.size > fft_size:
        segment = segment[:fft_size]
    taper = np.hanning(segment.size) if segment.size > 1 else np.ones(segment.size)
    segment = segment * taper
    if segment.size < fft_size:
        segment = np.pad(segment, (0, fft_size - segment.size), mode='constant')

    spectrum = np.fft.rfft(segment)
    return np.abs(spectrum) ** 2


def band_energy_ratio(power: np.ndarray, freqs: np.ndarray, freq_min: float, freq_max: float) -> float:
    """Share of total power that falls inside ``[freq_min, freq_max]``."""
    in_band = (freqs >= freq_min) & (freqs <= freq_max)
    band = float(np.sum(power[in_band]))
    total = float(np.sum(power))
    return band / (total + EPSILON)


def is_silence(samples: np.ndarray, threshold: float = 0.01) -> bool:
    """True when the whole signal's RMS stays below ``threshold`` (or it is empty)."""
    if samples.size == 0:
        return True
    return window_rms(samples) < threshold
