"""Exception handlers translating service errors into JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.errors import SocialGraphError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SocialGraphError)
    async def social_graph_error_handler(
        request: Request,
        exc: SocialGraphError,
    ) -> JSONResponse:
        logger.info(
            "Rejected request",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "code": exc.code,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
        )
