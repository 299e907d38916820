"""Live capture sessions and their registry."""
import asyncio
import time
from typing import Dict, Optional
from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.dsp.vad import detector_for_algorithm
from speechgate.audio.models import SourceFormat, StreamState
from speechgate.audio.pipeline import IngestionPipeline, StaticSource
from speechgate.core.config import settings
from speechgate.core.logging import logger
from speechgate.services.preview import PreviewCallback, PreviewWorker


class LiveSession:
    """One recording: an ingestion pipeline plus the detector used on its chunks."""

    def __init__(
        self,
        stream_id: str,
        source_format: SourceFormat,
        algorithm: Optional[str] = None,
        chunk_interval: Optional[float] = None,
        on_preview: Optional[PreviewCallback] = None,
    ):
        """
        Create the session; the pipeline is started by the caller.

        With ``on_preview``, every emitted chunk is handed to a background
        ``PreviewWorker`` and its segments are passed to the callback from
        the worker thread.

        Raises:
            InvalidParameters: Unknown algorithm name
        """
        self.stream_id = stream_id
        self.algorithm = algorithm or settings.vad_algorithm
        self.detector: SpeechDetector = detector_for_algorithm(self.algorithm)
        self.preview: Optional[PreviewWorker] = None
        if on_preview is not None and settings.enable_live_preview:
            self.preview = PreviewWorker(self.detector, self._preview_result(on_preview), name=f"preview-{stream_id}")
        self.pipeline = IngestionPipeline(
            StaticSource(source_format),
            chunk_interval=chunk_interval,
            on_chunk=self.preview.submit if self.preview is not None else None,
            sample_rate=self.detector.sample_rate,
        )
        self.state = StreamState(
            stream_id=stream_id,
            created_at=time.time(),
            algorithm=self.algorithm,
        )

    def _preview_result(self, on_preview: PreviewCallback) -> PreviewCallback:
        def deliver(chunk, segments):
            self.state.update_segments(segments)
            on_preview(chunk, segments)
        return deliver

    def wait_for_preview(self, timeout: float = 30.0) -> bool:
        """Block until the preview worker is idle (True right away without one)."""
        if self.preview is None:
            return True
        return self.preview.wait_idle(timeout=timeout)

    def close(self) -> None:
        """Stop capture and the preview worker."""
        if self.pipeline.is_running:
            self.pipeline.stop()
        if self.preview is not None:
            self.preview.close()

    def describe(self) -> dict:
        return {
            "stream_id": self.stream_id,
            "algorithm": self.algorithm,
            "running": self.pipeline.is_running,
            "buffered_seconds": round(self.pipeline.buffered_duration, 3),
            "chunks": self.pipeline.chunks_emitted,
            "previews_skipped": self.preview.skipped if self.preview is not None else 0,
            "latest_segments": [segment.to_dict() for segment in self.state.latest_segments],
        }


class SessionRegistry:
    """Tracks live sessions for the service; one instance lives on ``app.state``."""

    def __init__(self, max_sessions: Optional[int] = None):
        """Initialize the registry."""
        self._sessions: Dict[str, LiveSession] = {}
        self._lock = asyncio.Lock()
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_concurrent_streams

    async def register(self, session: LiveSession) -> bool:
        """
        Register a new session.

        Returns:
            False when the concurrent session limit is reached
        """
        async with self._lock:
            if len(self._sessions) >= self.max_sessions:
                logger.warning(f"Session limit {self.max_sessions} reached, rejecting {session.stream_id}")
                return False
            self._sessions[session.stream_id] = session
            logger.info(f"Registered session: {session.stream_id}")
            return True

    async def unregister(self, stream_id: str) -> None:
        """Remove a session (on disconnect)."""
        async with self._lock:
            if self._sessions.pop(stream_id, None) is not None:
                logger.info(f"Unregistered session: {stream_id}")

    async def get(self, stream_id: str) -> Optional[LiveSession]:
        """Get a session if it exists."""
        async with self._lock:
            return self._sessions.get(stream_id)

    async def list_sessions(self) -> list[dict]:
        """Describe all active sessions."""
        async with self._lock:
            return [session.describe() for session in self._sessions.values()]

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)
