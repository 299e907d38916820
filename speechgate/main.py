"""FastAPI application entrypoint."""
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from speechgate.api import ws_audio, rest_status
from speechgate.core.config import settings
from speechgate.core.logging import logger, setup_logging
from speechgate.services.sessions import SessionRegistry

# Setup logging
setup_logging()

# Create FastAPI app
app = FastAPI(
    title="SpeechGate",
    description="Speech segmentation service: live capture preview and one-shot detection",
    version=rest_status.VERSION
)

# CORS doesn't apply to the WebSocket route, only to REST
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when using "*" origins
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.sessions = SessionRegistry()

# Include routers
app.include_router(rest_status.router)


@app.websocket("/ws/audio")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for live audio capture."""
    # websocket_audio_endpoint calls websocket.accept() itself
    await ws_audio.websocket_audio_endpoint(websocket, app.state.sessions)


@app.on_event("startup")
async def startup_event():
    """Log the effective configuration."""
    logger.info(f"Starting SpeechGate on {settings.host}:{settings.port}")
    logger.info(
        f"Sample rate: {settings.sample_rate} Hz, chunk interval: {settings.chunk_interval_seconds}s, "
        f"algorithm: {settings.vad_algorithm}"
    )
    logger.info(
        f"Live preview {'enabled' if settings.enable_live_preview else 'disabled'}, "
        f"max {settings.max_concurrent_streams} concurrent streams"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info(f"Shutting down SpeechGate ({await app.state.sessions.count()} sessions open)")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "speechgate.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
