"""Configuration settings for the speech segmentation service."""
from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Canonical audio format
    sample_rate: int = 16000  # Hz, everything is resampled to this
    channels: int = 1  # mono

    # Live capture settings
    chunk_interval_seconds: float = 2.0  # new audio needed before the next cumulative chunk
    enable_live_preview: bool = True  # run detection on every emitted chunk

    # Detection settings
    vad_algorithm: str = "spectral_telephone"  # see speechgate.audio.dsp.vad.ALGORITHMS
    silence_threshold: float = 0.01  # RMS below which segment audio is not worth transcribing
    split_stereo_channels: bool = True  # detect each channel of stereo files separately

    # File segmentation: "vad" cuts at detected speech, "batch" cuts equal overlapping parts
    file_segmentation_mode: Literal["vad", "batch"] = "vad"
    batch_chunk_seconds: float = 30.0
    batch_overlap_seconds: float = 2.0

    # Performance settings
    max_concurrent_streams: int = 10
    detection_timeout_ms: int = 500  # Warn when a detection run takes longer
    max_upload_seconds: Optional[float] = 3600.0  # Reject longer /detect bodies

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "SPEECHGATE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
