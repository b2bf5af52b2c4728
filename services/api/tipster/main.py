from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tipster.api.router import api_router
from tipster.core.config import Settings, get_settings
from tipster.core.logging import configure_logging
from tipster.core.otel import init_otel
from tipster.core.redis import create_redis_async
from tipster.middleware.request_id import RequestIdMiddleware
from tipster.services.backend.client import BackendClient


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Network clients live for the process and are closed on shutdown.
        app.state.backend = BackendClient.from_settings(settings)
        app.state.redis = await create_redis_async(settings.redis_url)
        try:
            yield
        finally:
            await app.state.backend.aclose()
            if app.state.redis is not None:
                await app.state.redis.aclose()

    app = FastAPI(title=settings.api_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    init_otel(app, settings)
    return app


app = create_app()
