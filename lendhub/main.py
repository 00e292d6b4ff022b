"""
FastAPI application entry point.
Challenge: Mount routes, middleware (Prometheus), map domain errors to HTTP, startup (ES index, user cache).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from lendhub.api.v1.router import api_router
from lendhub.cache.redis_client import close_redis
from lendhub.cache.user_cache import UserCache
from lendhub.config import get_settings
from lendhub.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    InvalidStateTransitionError,
    LedgerBusyError,
    LendHubError,
    NotFoundError,
    PartialBatchFailureError,
    UnauthorizedError,
    ValidationError,
)
from lendhub.search.elasticsearch_client import close_elasticsearch, ensure_items_index

logger = logging.getLogger(__name__)

# Anything not listed (e.g. an escaped UninitializedLedgerError) is a 500
ERROR_STATUS: dict[type[LendHubError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    InvalidStateTransitionError: status.HTTP_409_CONFLICT,
    CapacityExceededError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    LedgerBusyError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PartialBatchFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: LendHubError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def lendhub_error_handler(request: Request, exc: LendHubError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message, "error": type(exc).__name__})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: user cache, Elasticsearch index when available. Shutdown: close clients."""
    app.state.user_cache = UserCache()
    try:
        await ensure_items_index()
    except Exception as exc:
        # ES may be down; the app still works (search returns empty)
        logger.warning("Elasticsearch index not ensured: %s", exc)
    yield
    await close_elasticsearch()
    await close_redis()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(
        title=settings.app_name,
        description="Community lending: items, exchange points, borrow/lend transactions and category stats.",
        version="1.0.0",
        lifespan=lifespan,
    )
    # Also set here so ASGI clients that skip lifespan (tests) still get a cache
    app.state.user_cache = UserCache()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LendHubError, lendhub_error_handler)

    # Prometheus metrics at /metrics
    app.mount("/metrics", make_asgi_app())

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
