from fastapi import APIRouter, Body, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
import asyncio
import base64
import logging
import cv2
import numpy as np
from backend.processing_config import get_config, update_config
from backend.smile_engine.calibration import CalibrationMode
from backend.smile_engine.errors import InsufficientSamples
import json

websocket_router = APIRouter()
logger = logging.getLogger(__name__)


def _create_engine(frame_source):
    # MediaPipe models load on first connection, not at import time
    from backend.smile_engine.factory import create_engine
    return create_engine(frame_source=frame_source)


# Replaced in tests with a factory returning an engine on fake capabilities.
engine_factory = _create_engine


@websocket_router.get("/health")
async def get_health():
    # simple health endpoint (do not shadow frontend root "/")
    return HTMLResponse("<h1>Smile Tracking Backend Running</h1>")


@websocket_router.get("/config")
async def read_config():
    return get_config()


@websocket_router.post("/config")
async def write_config(updates: dict = Body(...)):
    try:
        return update_config(updates)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _decode_frame(b64: str):
    # handle data URI prefix
    if b64.startswith("data:"):
        b64 = b64.split(",", 1)[1]
    img_bytes = base64.b64decode(b64)
    np_arr = np.frombuffer(img_bytes, np.uint8)
    img = cv2.imdecode(np_arr, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("not an image")
    return img


@websocket_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    latest = {"frame": None}
    engine = engine_factory(lambda: latest["frame"])
    watcher = None
    try:
        while True:
            message = await websocket.receive_text()
            # Expecting JSON messages with a type field. Frames are data URLs:
            # {"type": "frame", "data": "data:image/jpeg;base64,/..."}
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"error": "invalid JSON"}))
                continue

            kind = payload.get("type")
            if kind == "calibrate":
                try:
                    engine.start_calibration()
                except ValueError as exc:
                    await websocket.send_text(json.dumps({"error": str(exc)}))
                    continue
                await websocket.send_text(json.dumps({
                    "type": "calibration_started",
                    "mode": engine.config.calibration.mode.value,
                    "capacity": engine.calibration.capacity,
                }))
                if engine.config.calibration.mode == CalibrationMode.TIMED:
                    # timed bursts complete on sampler ticks, without a client message
                    if watcher is not None:
                        watcher.cancel()
                    watcher = asyncio.ensure_future(_flush_after_sampling(websocket, engine))
                continue

            if kind == "cancel_calibration":
                engine.cancel_calibration()
                await websocket.send_text(json.dumps({"type": "calibration_cancelled"}))
                continue

            if kind == "finish_calibration":
                try:
                    engine.finish_calibration()
                except InsufficientSamples as exc:
                    await websocket.send_text(json.dumps({"error": str(exc)}))
                    continue
                # the completion event goes out with the drained events below
                await _send_events(websocket, engine)
                continue

            if kind != "frame" or "data" not in payload:
                await websocket.send_text(json.dumps({"error": "bad message format"}))
                continue

            try:
                img = _decode_frame(payload["data"])
            except (ValueError, TypeError):
                await websocket.send_text(json.dumps({"error": "image decode failed"}))
                continue

            latest["frame"] = img
            # frames are analysed one at a time on the engine's worker thread
            result = await asyncio.wrap_future(engine.submit(img))

            reply = {"type": "analysis"}
            reply.update(result.to_dict())
            reply["neutral_mouth_width"] = engine.baseline
            reply["calibrating"] = engine.is_calibrating
            await websocket.send_text(json.dumps(reply))
            await _send_events(websocket, engine)

    except WebSocketDisconnect:
        logger.info("client disconnected")
    finally:
        # Clean up
        if watcher is not None:
            watcher.cancel()
        engine.close()


async def _send_events(websocket: WebSocket, engine):
    # classifications already travel inside each analysis reply
    for kind, payload in engine.drain_events():
        if kind == "calibration_complete":
            await websocket.send_text(json.dumps({"type": "calibration_complete", "baseline": payload}))


async def _flush_after_sampling(websocket: WebSocket, engine, poll: float = 0.05):
    while engine.is_sampling:
        await asyncio.sleep(poll)
    await _send_events(websocket, engine)
