#!/usr/bin/env python3
"""
Synthetic client - exercises the live endpoint without a microphone.

Streams silence, a speech-band tone, then silence again to /ws/audio as
int16 PCM, prints every preview it gets back and finally stops the
recording to print the segments of the whole take.
"""
import asyncio
import json
import sys
import logging
import numpy as np
import websockets

logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# Audio configuration
SAMPLE_RATE = 16000  # Hz
BLOCK_DURATION_MS = 100
BLOCK_SIZE = int(SAMPLE_RATE * BLOCK_DURATION_MS / 1000)

SERVER_URL = f"ws://localhost:8000/ws/audio?sample_rate={SAMPLE_RATE}&channels=1&dtype=int16"

# Seconds of each part of the take
LEADING_SILENCE = 1.0
TONE = 2.0
TRAILING_SILENCE = 1.5
TONE_HZ = 440.0


def generate_take() -> np.ndarray:
    """Silence, tone, silence as int16 samples."""
    t = np.arange(int(TONE * SAMPLE_RATE)) / SAMPLE_RATE
    tone = 0.5 * np.sin(2 * np.pi * TONE_HZ * t)
    audio = np.concatenate([
        np.zeros(int(LEADING_SILENCE * SAMPLE_RATE)),
        tone,
        np.zeros(int(TRAILING_SILENCE * SAMPLE_RATE)),
    ])
    return (audio * 32767).astype(np.int16)


def print_segments(segments: list) -> None:
    for segment in segments:
        print(f"    {segment['start_time']:7.2f}s - {segment['end_time']:7.2f}s  ({segment['duration']:.2f}s)")


async def drain_messages(websocket) -> None:
    """Print any previews that arrived while sending."""
    while True:
        try:
            message = await asyncio.wait_for(websocket.recv(), timeout=0.01)
        except asyncio.TimeoutError:
            return
        data = json.loads(message)
        if data.get("type") == "chunk":
            print(f"  chunk #{data['sequence']}: {data['duration']:.1f}s, {len(data['segments'])} segments")
            print_segments(data["segments"])
        else:
            print(f"  {data}")


async def run_client():
    print("=" * 70)
    print("SpeechGate - Synthetic Client")
    print("=" * 70)
    print(f"Server: {SERVER_URL}")
    print(f"Take: {LEADING_SILENCE}s silence, {TONE}s {TONE_HZ:.0f} Hz tone, {TRAILING_SILENCE}s silence")
    print("=" * 70 + "\n")

    take = generate_take()

    try:
        async with websockets.connect(SERVER_URL, ping_interval=None) as websocket:
            ready = json.loads(await websocket.recv())
            if ready.get("type") != "ready":
                print(f"✗ Server refused the stream: {ready}")
                sys.exit(1)
            print(f"✓ Connected as {ready['stream_id']} using {ready['algorithm']}\n")

            for offset in range(0, take.size, BLOCK_SIZE):
                await websocket.send(take[offset:offset + BLOCK_SIZE].tobytes())
                await drain_messages(websocket)
                # Simulate real-time capture
                await asyncio.sleep(BLOCK_DURATION_MS / 1000.0)

            await websocket.send(json.dumps({"action": "stop"}))
            while True:
                data = json.loads(await websocket.recv())
                if data.get("type") == "final":
                    break

            print("\n" + "=" * 70)
            print(f"FINAL: {data['duration']:.2f}s, {len(data['segments'])} segments")
            print_segments(data["segments"])
            print("=" * 70)

    except ConnectionRefusedError:
        print("\n✗ ERROR: Could not connect to server at", SERVER_URL)
        print("  Make sure the service is running:")
        print("    python -m uvicorn speechgate.main:app --reload")
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(run_client())
    except KeyboardInterrupt:
        print("\n\nExiting...")
