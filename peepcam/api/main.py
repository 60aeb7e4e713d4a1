"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from peepcam.api.routes import config, health, privacy, stats, stream


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Stop the background render loop when the app shuts down."""

    from peepcam.api.services.state import stop_engine

    yield
    stop_engine()


app = FastAPI(title="peepcam", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(config.router)
app.include_router(privacy.router)
app.include_router(stats.router)
app.include_router(stream.router)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("peepcam.api.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
