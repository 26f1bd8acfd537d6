"""FastAPI application factory for the webhook intake service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI

from mockup_forge import __version__
from mockup_forge.config import Settings, get_settings
from mockup_forge.queue import JobQueue, get_job_queue
from mockup_forge.webhooks.handlers import register_webhook_routes

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, queue: JobQueue | None = None) -> FastAPI:
    """Build the app. ``queue`` defaults to the Redis-backed singleton."""
    settings = settings or get_settings()
    queue = queue or get_job_queue(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ANN001
        try:
            queue.ensure_group()
        except redis.RedisError:
            # Workers create the group too; intake only needs XADD
            logger.warning("Could not create consumer group on startup", exc_info=True)
        yield

    app = FastAPI(title="mockup-forge", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.queue = queue
    register_webhook_routes(app)
    return app


def run(settings: Settings, host: str | None = None, port: int | None = None) -> None:
    """Serve the app with uvicorn (blocking)."""
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )
