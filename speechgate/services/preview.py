"""Background detection on cumulative chunks for live preview."""
import threading
import time
from typing import Callable, Optional
from speechgate.audio.dsp.base import SpeechDetector
from speechgate.audio.models import AudioChunk, SpeechSegment
from speechgate.core.logging import logger


PreviewCallback = Callable[[AudioChunk, list[SpeechSegment]], None]


class PreviewWorker:
    """
    Runs a detector on emitted chunks without ever blocking the capture path.

    Only the newest pending chunk is kept: it contains every sample of the
    chunks it replaces, so skipping the older ones loses nothing.
    """

    def __init__(self, detector: SpeechDetector, on_result: PreviewCallback, name: str = "speechgate-preview"):
        """
        Initialize and start the worker thread.

        Args:
            detector: Detector applied to each chunk
            on_result: Receives (chunk, segments) from the worker thread
            name: Thread name
        """
        self.detector = detector
        self.on_result = on_result
        self._pending: Optional[AudioChunk] = None
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._closed = threading.Event()
        self._busy = threading.Event()
        self.processed = 0
        self.skipped = 0
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, chunk: AudioChunk) -> None:
        """Queue a chunk for detection, replacing any chunk still waiting."""
        if self._closed.is_set():
            return
        with self._lock:
            if self._pending is not None:
                self.skipped += 1
            self._pending = chunk
        self._wakeup.set()

    def _take(self) -> Optional[AudioChunk]:
        with self._lock:
            chunk, self._pending = self._pending, None
            self._wakeup.clear()
            if chunk is not None:
                self._busy.set()
            return chunk

    def _run(self) -> None:
        while not self._closed.is_set():
            self._wakeup.wait(timeout=0.1)
            chunk = self._take()
            if chunk is None:
                continue

            try:
                self._process(chunk)
            finally:
                self._busy.clear()

    def _process(self, chunk: AudioChunk) -> None:
        start_time = time.perf_counter()
        try:
            segments = self.detector.detect(chunk.samples)
        except Exception as e:
            logger.error(f"Preview detection failed on chunk #{chunk.sequence}: {e}", exc_info=True)
            return

        try:
            self.on_result(chunk, segments)
        except Exception as e:
            logger.error(f"Preview consumer failed on chunk #{chunk.sequence}: {e}", exc_info=True)
        self.processed += 1
        logger.debug(
            f"Preview chunk #{chunk.sequence}: {len(segments)} segments "
            f"in {(time.perf_counter() - start_time) * 1000:.1f}ms"
        )

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """Block until no chunk is pending or being processed. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                pending = self._pending
            if pending is None and not self._busy.is_set():
                return True
            time.sleep(0.01)
        return False

    def close(self, timeout: float = 2.0) -> None:
        """Stop the worker thread; a detection already running is allowed to finish."""
        self._closed.set()
        self._wakeup.set()
        self._thread.join(timeout=timeout)
