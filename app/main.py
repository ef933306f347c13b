from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.poller import Poller
from services.processor import build_default_processor
from settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    poller = None
    if settings.poll_in_app:
        poller = Poller(build_default_processor(), interval=settings.poll_interval)
        poller.start_background()
    app.state.poller = poller
    try:
        yield
    finally:
        if poller is not None:
            poller.stop()
            poller.join(timeout=settings.poll_interval)
        build_default_processor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Log Grader",
        description="Grades sensor calibration logs and serves the stored brandings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
