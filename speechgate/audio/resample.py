"""Conversion of native-format audio to the canonical format (mono float32 at 16 kHz)."""
import numpy as np
from typing import Optional, Union
from speechgate.audio.models import AudioBlock, SourceFormat, SUPPORTED_DTYPES
from speechgate.core.config import settings
from speechgate.core.errors import FormatNegotiationFailed

# Full-scale values used to normalize integer PCM to [-1.0, 1.0]
_INT_SCALE = {
    "int16": 32768.0,
    "int32": 2147483648.0,
}


def to_float(samples: np.ndarray, dtype: str) -> np.ndarray:
    """
    Normalize raw samples of a given dtype to float32.

    Float input is passed through without clipping; integer PCM is scaled
    to [-1.0, 1.0) and unsigned 8-bit PCM is re-centred first.
    """
    if dtype == "uint8":
        return (samples.astype(np.float32) - 128.0) / 128.0
    if dtype in _INT_SCALE:
        return (samples.astype(np.float64) / _INT_SCALE[dtype]).astype(np.float32)
    return samples.astype(np.float32, copy=False)


def downmix(samples: np.ndarray, channels: int) -> np.ndarray:
    """
    Average all channels into one.

    Args:
        samples: 1-D interleaved (L, R, L, R, ...) or 2-D (frames, channels)
        channels: Channel count of the source

    Returns:
        1-D mono signal
    """
    if samples.ndim == 2:
        if samples.shape[1] == 1:
            return samples[:, 0]
        return samples.mean(axis=1)
    if channels <= 1:
        return samples
    usable = samples.size - (samples.size % channels)
    return samples[:usable].reshape(-1, channels).mean(axis=1)


def extract_channel(samples: np.ndarray, channel: int, channels: int) -> np.ndarray:
    """Pick one channel out of interleaved or 2-D multi-channel samples."""
    if samples.ndim == 2:
        return samples[:, channel]
    if channels <= 1:
        return samples
    return samples[channel::channels][: samples.size // channels]


def resample_linear(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """
    One-shot linear-interpolation resampling of a whole signal.

    Used for complete buffers (files); streaming input goes through
    ``FormatConverter`` which keeps phase across blocks.
    """
    if source_rate == target_rate or samples.size == 0:
        return samples.astype(np.float32, copy=False)
    target_length = int(round(samples.size * target_rate / source_rate))
    if target_length <= 0:
        return np.zeros(0, dtype=np.float32)
    positions = np.arange(target_length) * (source_rate / target_rate)
    return np.interp(positions, np.arange(samples.size), samples).astype(np.float32)


class FormatConverter:
    """
    Converts blocks from one source format to canonical samples.

    Resampling is linear interpolation with the read position carried from
    block to block, so consecutive blocks join without clicks or drift.
    Blocks at the canonical rate pass through untouched (down-mixed and
    converted to float32 only).
    """

    def __init__(self, source: SourceFormat, target_rate: Optional[int] = None):
        """
        Build a converter for ``source``.

        Raises:
            FormatNegotiationFailed: Unsupported dtype, or non-positive rate/channel count
        """
        if target_rate is None:
            target_rate = settings.sample_rate
        if source.dtype not in SUPPORTED_DTYPES:
            raise FormatNegotiationFailed(
                f"Unsupported sample format '{source.dtype}' (supported: {', '.join(SUPPORTED_DTYPES)})"
            )
        if source.sample_rate <= 0 or target_rate <= 0:
            raise FormatNegotiationFailed(
                f"Cannot convert {source.sample_rate} Hz to {target_rate} Hz"
            )
        if source.channels <= 0:
            raise FormatNegotiationFailed(f"Invalid channel count {source.channels}")

        self.source = source
        self.target_rate = target_rate
        self._step = source.sample_rate / target_rate  # input samples per output sample
        self._position = 0.0  # next output position, relative to the carried sample
        self._carry = np.zeros(0, dtype=np.float32)

    @property
    def passthrough(self) -> bool:
        return self.source.sample_rate == self.target_rate

    def reset(self) -> None:
        """Forget the carried sample and phase (call at the start of a recording)."""
        self._position = 0.0
        self._carry = np.zeros(0, dtype=np.float32)

    def convert(self, block: Union[AudioBlock, np.ndarray]) -> np.ndarray:
        """
        Convert one native block to canonical mono float32 samples.

        Args:
            block: AudioBlock or raw numpy samples in the source format

        Returns:
            Canonical samples (may be empty for very small blocks when resampling)
        """
        samples = block.samples if isinstance(block, AudioBlock) else np.asarray(block)
        if samples.size == 0:
            return np.zeros(0, dtype=np.float32)

        mono = downmix(to_float(samples, self.source.dtype), self.source.channels)
        if self.passthrough:
            return np.array(mono, dtype=np.float32, copy=True)

        x = np.concatenate([self._carry, mono.astype(np.float32, copy=False)])
        last = x.size - 1
        if last < 1 or self._position > last:
            self._carry = x
            return np.zeros(0, dtype=np.float32)

        count = int(np.floor((last - self._position) / self._step)) + 1
        positions = self._position + self._step * np.arange(count)
        out = np.interp(positions, np.arange(x.size), x).astype(np.float32)

        # Keep the last input sample so the next block interpolates from it
        self._position = self._position + self._step * count - last
        self._carry = x[last:]
        return out
