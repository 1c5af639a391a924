"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from api.errors import register_exception_handlers
from api.v1 import api_router
from core import settings
from core.logging_config import configure_logging
from services import RateLimitMiddleware, get_rate_limiter

API_V1_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)

    app.add_middleware(RateLimitMiddleware, limiter_factory=get_rate_limiter)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=API_V1_PREFIX)

    @app.get(f"{API_V1_PREFIX}/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
