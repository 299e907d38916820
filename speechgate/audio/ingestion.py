"""Helper functions for decoding incoming raw audio bytes."""
import numpy as np
import time
from typing import Optional
from speechgate.audio.models import AudioBlock, SourceFormat
from speechgate.core.config import settings
from speechgate.core.errors import FormatNegotiationFailed
from speechgate.core.logging import logger


def bytes_to_audio_block(
    data: bytes,
    source_format: Optional[SourceFormat] = None
) -> AudioBlock:
    """
    Convert raw PCM bytes to an AudioBlock.

    Args:
        data: Raw little-endian PCM bytes, interleaved when multi-channel
        source_format: Format of the bytes (defaults to canonical float32 mono)

    Returns:
        AudioBlock object

    Raises:
        FormatNegotiationFailed: If the dtype is not a known PCM sample type
    """
    if source_format is None:
        source_format = SourceFormat(sample_rate=settings.sample_rate, channels=settings.channels)

    try:
        dtype = np.dtype(source_format.dtype).newbyteorder("<")
    except TypeError as e:
        raise FormatNegotiationFailed(f"Unknown sample format '{source_format.dtype}'") from e

    samples = np.frombuffer(data, dtype=dtype)

    if source_format.channels > 1:
        usable = samples.size - (samples.size % source_format.channels)
        samples = samples[:usable].reshape(-1, source_format.channels)

    return AudioBlock(
        samples=samples,
        sample_rate=source_format.sample_rate,
        channels=source_format.channels,
        timestamp=time.time()
    )


def validate_audio_data(data: bytes, source_format: Optional[SourceFormat] = None) -> bool:
    """
    Validate incoming audio data.

    Args:
        data: Raw audio bytes
        source_format: Format the bytes claim to be in

    Returns:
        True if valid, False otherwise
    """
    if len(data) == 0:
        logger.warning("Received empty audio data")
        return False

    dtype = source_format.dtype if source_format else "float32"
    channels = source_format.channels if source_format else 1
    try:
        frame_bytes = np.dtype(dtype).itemsize * max(channels, 1)
    except TypeError:
        logger.warning(f"Unknown sample format '{dtype}'")
        return False

    # Whole sample frames only
    if len(data) % frame_bytes != 0:
        logger.warning(f"Audio data size {len(data)} is not a multiple of {frame_bytes} bytes")
        return False

    return True
