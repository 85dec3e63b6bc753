"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from iam.presentation import router as iam_router
from infrastructure.database.dependencies import (
    close_database_connections,
    get_write_session,
)
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings
from infrastructure.version import __version__

logger = structlog.get_logger()


@asynccontextmanager
async def authgate_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Database engine disposal on shutdown (the engine is created lazily)
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)
    probe = DefaultStartupProbe()
    probe.application_started(
        version=__version__, identity_backend=settings.identity_backend.value
    )

    yield

    await close_database_connections()
    probe.application_stopped()


app = FastAPI(
    title="Authgate API",
    description="Identity reconciliation, application ownership and session tokens",
    version=__version__,
    lifespan=authgate_lifespan,
)

app.include_router(iam_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/db")
async def health_db(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> dict:
    """Check database connection health."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ok", "connected": True}
    except Exception as e:
        return {
            "status": "error",
            "connected": False,
            "error": str(e),
        }
