"""Stats endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from peepcam.api.schemas.models import StatsSchema
from peepcam.api.services.engine import VideoEngine
from peepcam.api.services.state import get_engine

router = APIRouter()


@router.get("/stats", response_model=StatsSchema)
def stats(engine: VideoEngine = Depends(get_engine)) -> StatsSchema:
    """Return detection counts, loop rate and engine health."""

    summary = engine.latest_summary()
    if summary is None:
        return StatsSchema(
            detector=engine.kind.value,
            state=engine.state,
            confident_count=0,
            total_count=0,
            fps=0.0,
            stream_fps=engine.stream_fps(),
            privacy=engine.privacy.enabled,
            error=engine.last_error,
        )
    return StatsSchema(
        detector=summary.detector,
        state=engine.state,
        confident_count=summary.confident_count,
        total_count=summary.total_count,
        fps=summary.fps,
        stream_fps=engine.stream_fps(),
        privacy=summary.privacy,
        error=engine.last_error,
    )
