"""MJPEG video and WebSocket metadata streams."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from peepcam.api.services.engine import VideoEngine
from peepcam.api.services.state import engine_for, get_engine
from peepcam.core.config.settings import parse_detector_kind

router = APIRouter()

logger = logging.getLogger(__name__)


def engine_for_model(model: str | None) -> VideoEngine:
    """Return the engine running the detector named by `model` (pose when omitted)."""

    try:
        kind = parse_detector_kind(model)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return engine_for(kind)


@router.get("/stream/video")
async def stream_video(
    model: str | None = Query(default=None, description="posenet|blazeface|pose|face"),
):
    """Stream annotated frames as multipart MJPEG.

    `model` switches the running detector; when omitted the pose model runs.
    """

    await asyncio.to_thread(engine_for_model, model)

    async def generator():
        last_sent: bytes | None = None
        while True:
            current = get_engine()
            frame, summary = current.latest_stream_packet()
            if frame is not None and frame is not last_sent:
                headers = b"--frame\r\n" b"Content-Type: image/jpeg\r\n"
                if summary is not None:
                    headers += f"X-Frame-Id: {summary.frame_id}\r\n".encode("ascii")
                headers += f"Content-Length: {len(frame)}\r\n\r\n".encode("ascii")
                yield headers + frame + b"\r\n"
                last_sent = frame
            await asyncio.sleep(0.02)

    return StreamingResponse(
        generator(),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={
            "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
            "Pragma": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/stream/metadata")
async def stream_metadata(ws: WebSocket):
    await ws.accept()
    engine: VideoEngine = await asyncio.to_thread(get_engine)
    try:
        async for summary in engine.metadata_stream():
            payload = asdict(summary)
            payload["stream_fps"] = engine.stream_fps()
            await ws.send_json(payload)
    except WebSocketDisconnect:
        return
    except Exception:
        logger.exception("Metadata websocket crashed")
        await ws.close(code=1011)
