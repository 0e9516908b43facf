"""
FastAPI application factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.errors import (
    ConflictError,
    InsufficientDataError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
    VapeRankError,
)
from services.context import ServiceContext
from web.routes import router

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (RateLimitedError, 429),
    (ConflictError, 409),
    (UnauthorizedError, 401),
    (UpstreamError, 502),
    (InsufficientDataError, 503),
)


def status_code_for(error: VapeRankError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def handle_vaperank_error(request: Request, exc: VapeRankError) -> JSONResponse:
    status_code = status_code_for(exc)
    headers = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
        logger.debug("rate limited %s %s: %s", request.method, request.url.path, exc)
    elif status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
        headers=headers,
    )


def create_app(context: ServiceContext) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await context.aclose()

    app = FastAPI(
        title="VapeRank",
        description="Pairwise celebrity voting with Elo ratings",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context
    app.add_exception_handler(VapeRankError, handle_vaperank_error)
    app.include_router(router)
    return app
