"""
FastAPI application factory
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.errors import register_exception_handlers
from app.api.v1 import budgets, summary, transactions, users
from app.config import get_settings
from app.infrastructure.cache import AnalyticsCache
from app.infrastructure.db.session import check_db_connection, dispose_engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the analytics cache on startup, release them on shutdown."""
    settings = get_settings()
    init_db()
    app.state.cache = AnalyticsCache(default_ttl_seconds=settings.CACHE_TTL_SECONDS)
    logger.info("FinEdge API started (environment: %s)", settings.ENVIRONMENT)
    try:
        yield
    finally:
        app.state.cache.clear()
        dispose_engine()
        logger.info("FinEdge API stopped")


def create_app() -> FastAPI:
    """
    Application factory - creates and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="FinEdge",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(transactions.router)
    app.include_router(budgets.router)
    app.include_router(summary.router)

    # Health checks
    @app.get("/health", tags=["system"])
    def health():
        """Health check endpoint"""
        return {
            "success": True,
            "message": "FinEdge API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database is reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
