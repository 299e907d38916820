"""WebSocket endpoint for live audio capture with cumulative-chunk speech preview."""
import asyncio
import json
import uuid
from typing import Optional
from fastapi import WebSocket, WebSocketDisconnect
from speechgate.audio.ingestion import bytes_to_audio_block, validate_audio_data
from speechgate.audio.models import AudioChunk, SourceFormat, SpeechSegment
from speechgate.core.config import settings
from speechgate.core.errors import SpeechGateError
from speechgate.core.logging import logger
from speechgate.services.sessions import LiveSession, SessionRegistry

# Upper bound for one preview message to reach the socket
PREVIEW_SEND_TIMEOUT = 10.0


def _source_format_from_query(websocket: WebSocket) -> SourceFormat:
    params = websocket.query_params
    return SourceFormat(
        sample_rate=int(params.get("sample_rate", settings.sample_rate)),
        channels=int(params.get("channels", settings.channels)),
        dtype=params.get("dtype", "float32"),
    )


def _preview_sender(websocket: WebSocket, stream_id: str, loop: asyncio.AbstractEventLoop):
    """
    Build the preview callback for a connection.

    The callback runs on the preview worker thread; it hands the message to
    the event loop and waits for the send, so the worker only reports idle
    once the client has been sent the chunk. A failed send raises here and is
    logged by the worker.
    """
    def send(chunk: AudioChunk, segments: list[SpeechSegment]) -> None:
        message = {
            "type": "chunk",
            "stream_id": stream_id,
            "sequence": chunk.sequence,
            "samples": int(chunk.samples.size),
            "duration": round(chunk.duration, 4),
            "segments": [segment.to_dict() for segment in segments],
        }
        future = asyncio.run_coroutine_threadsafe(websocket.send_json(message), loop)
        future.result(timeout=PREVIEW_SEND_TIMEOUT)

    return send


async def process_stream(session: LiveSession, websocket: WebSocket) -> None:
    """
    Receive audio blocks and control commands until the client stops or leaves.

    Binary messages are native PCM blocks. Text messages are JSON commands:
    ``{"action": "clear"}`` restarts the recording, ``{"action": "stop"}``
    finishes it and returns the segments of the whole recording.

    Args:
        session: Live session bound to this connection
        websocket: WebSocket connection
    """
    source_format = session.pipeline.source.source_format

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("bytes")
            if data is not None:
                if not validate_audio_data(data, source_format):
                    logger.warning(f"Invalid audio data from stream {session.stream_id}")
                    continue
                # Emitted chunks go straight to the session's preview worker
                session.pipeline.ingest(bytes_to_audio_block(data, source_format))
                continue

            try:
                command = json.loads(message.get("text") or "{}")
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "Commands must be JSON"})
                continue
            action = command.get("action") if isinstance(command, dict) else None

            # Previews already submitted are delivered before the command's reply
            if not await asyncio.to_thread(session.wait_for_preview):
                logger.warning(f"Preview still running for {session.stream_id}, replying anyway")

            if action == "clear":
                session.pipeline.clear()
                await websocket.send_json({"type": "cleared", "stream_id": session.stream_id})
            elif action == "stop":
                samples = session.pipeline.stop()
                segments = await asyncio.to_thread(session.detector.detect, samples)
                session.state.update_segments(segments)
                await websocket.send_json({
                    "type": "final",
                    "stream_id": session.stream_id,
                    "samples": int(samples.size),
                    "duration": round(samples.size / session.pipeline.sample_rate, 4),
                    "segments": [segment.to_dict() for segment in segments],
                })
                return
            else:
                await websocket.send_json({"type": "error", "detail": f"Unknown action {action!r}"})

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for stream {session.stream_id}")


async def websocket_audio_endpoint(websocket: WebSocket, registry: SessionRegistry) -> None:
    """
    WebSocket endpoint handler for /ws/audio.

    Query parameters describe the native format of the binary messages
    (``sample_rate``, ``channels``, ``dtype``) and pick the detector
    (``algorithm``).
    """
    await websocket.accept()

    stream_id = f"ws-{uuid.uuid4().hex[:8]}"
    logger.info(f"New WebSocket connection: {stream_id}")

    session: Optional[LiveSession] = None
    try:
        session = LiveSession(
            stream_id,
            _source_format_from_query(websocket),
            algorithm=websocket.query_params.get("algorithm"),
            on_preview=_preview_sender(websocket, stream_id, asyncio.get_running_loop()),
        )
        session.pipeline.start()
    except (SpeechGateError, ValueError) as e:
        logger.warning(f"Rejecting stream {stream_id}: {e}")
        if session is not None:
            await asyncio.to_thread(session.close)
        await websocket.send_json({"type": "error", "detail": str(e)})
        await websocket.close(code=1003)
        return

    if not await registry.register(session):
        await asyncio.to_thread(session.close)
        await websocket.send_json({"type": "error", "detail": "Too many concurrent streams"})
        await websocket.close(code=1013)
        return

    await websocket.send_json({
        "type": "ready",
        "stream_id": stream_id,
        "algorithm": session.algorithm,
        "chunk_interval": session.pipeline.chunk_interval,
    })

    try:
        await process_stream(session, websocket)
    except Exception as e:
        logger.error(f"WebSocket error for {stream_id}: {e}", exc_info=True)
    finally:
        await registry.unregister(stream_id)
        # The worker may be waiting on the event loop, so close it off-loop
        await asyncio.to_thread(session.close)
        try:
            await websocket.close()
        except RuntimeError:
            # Already closed by the client
            pass
        logger.info(f"Cleaned up stream {stream_id}")
