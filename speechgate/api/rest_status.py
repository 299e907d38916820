"""REST endpoints for health, configuration discovery and one-shot detection."""
import asyncio
from typing import Optional
import numpy as np
from fastapi import APIRouter, HTTPException, Query, Request
from speechgate.audio.dsp.vad import ALGORITHMS, DEFAULT_ALGORITHM, detector_for_algorithm, normalize_family, speech_ratio
from speechgate.audio.ingestion import bytes_to_audio_block, validate_audio_data
from speechgate.audio.models import SourceFormat
from speechgate.audio.params import PARAMETER_TYPES, PRESET_NAMES
from speechgate.core.config import settings
from speechgate.core.errors import FormatNegotiationFailed, InvalidParameters
from speechgate.core.logging import logger
from speechgate.services.file_segmentation import FILE_SEGMENTATION_MODES, segment_file

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Status and version information
    """
    return {
        "status": "ok",
        "version": VERSION
    }


@router.get("/algorithms")
async def list_algorithms():
    """Available combined algorithm names and the configured default."""
    return {
        "default": settings.vad_algorithm or DEFAULT_ALGORITHM,
        "algorithms": {
            name: {"family": family, "preset": preset}
            for name, (family, preset) in ALGORITHMS.items()
        },
    }


@router.get("/presets/{family}")
async def list_presets(family: str):
    """Preset values of one detector family."""
    try:
        key = normalize_family(family)
    except InvalidParameters as e:
        raise HTTPException(status_code=404, detail=str(e))

    params_cls = PARAMETER_TYPES[key]
    return {
        "family": key,
        "presets": {name: params_cls.preset(name).to_dict() for name in PRESET_NAMES},
    }


@router.get("/sessions")
async def list_sessions(request: Request):
    """Active live capture sessions."""
    return {"sessions": await request.app.state.sessions.list_sessions()}


@router.post("/detect")
async def detect_speech(
    request: Request,
    algorithm: Optional[str] = Query(None, description="Combined algorithm name, e.g. spectral_telephone"),
    sample_rate: int = Query(settings.sample_rate, gt=0),
    channels: int = Query(1, gt=0),
    dtype: str = Query("float32"),
    split_channels: Optional[bool] = Query(None, description="Detect stereo channels separately"),
    mode: Optional[str] = Query(None, description="File segmentation mode: vad or batch"),
):
    """
    Detect speech segments in a raw PCM request body.

    The body holds little-endian samples in the given format, interleaved
    when multi-channel. An empty body yields no segments.
    """
    source_format = SourceFormat(sample_rate=sample_rate, channels=channels, dtype=dtype)
    if split_channels is None:
        split_channels = settings.split_stereo_channels
    mode = (mode or settings.file_segmentation_mode).lower()
    if mode not in FILE_SEGMENTATION_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode '{mode}', expected one of {FILE_SEGMENTATION_MODES}")
    try:
        detector = detector_for_algorithm(algorithm or settings.vad_algorithm)
    except InvalidParameters as e:
        raise HTTPException(status_code=400, detail=str(e))

    data = await request.body()
    if not data:
        return {"algorithm": algorithm or settings.vad_algorithm, "mode": mode, "duration": 0.0, "samples": 0,
                "speech_ratio": 0.0, "segments": []}

    if not validate_audio_data(data, source_format):
        raise HTTPException(status_code=400, detail="Body is not a whole number of sample frames")

    try:
        block = bytes_to_audio_block(data, source_format)
    except FormatNegotiationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    duration = block.frame_count / sample_rate
    if settings.max_upload_seconds is not None and duration > settings.max_upload_seconds:
        raise HTTPException(status_code=413, detail=f"Audio longer than {settings.max_upload_seconds}s")

    try:
        results = await asyncio.to_thread(
            segment_file,
            np.asarray(block.samples),
            source_format,
            mode,
            detector,
            split_channels,
            0.0,  # report every detected segment, even quiet ones
        )
    except (FormatNegotiationFailed, InvalidParameters) as e:
        raise HTTPException(status_code=400, detail=str(e))

    segments = [item.segment for item in results]
    # Overlapping batch parts or per-channel segments don't measure speech coverage
    no_coverage = (split_channels and channels == 2) or mode == "batch"
    logger.info(f"/detect: {len(segments)} segments in {duration:.2f}s of audio ({mode}, {detector.family})")
    return {
        "algorithm": algorithm or settings.vad_algorithm,
        "mode": mode,
        "duration": round(duration, 4),
        "samples": block.frame_count,
        "speech_ratio": round(speech_ratio(segments, duration), 4) if not no_coverage else None,
        "segments": [item.to_dict() for item in results],
    }
