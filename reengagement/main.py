"""
FastAPI application for the re-engagement notification service.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from reengagement.config import get_settings
from reengagement.db.pool import db_pool
from reengagement.infrastructure.observability.logging import get_logger, log_request, setup_logging
from reengagement.routes import health, notifications

setup_logging(log_level=get_settings().log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool on startup and close it on shutdown."""
    settings = get_settings()
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    if settings.SUPABASE_DB_URL:
        await db_pool.initialize(settings.SUPABASE_DB_URL, settings.get_db_pool_config())
    else:
        # Invocations will report the missing setting as a 500
        logger.warning("SUPABASE_DB_URL not set, database pool not initialized")

    yield

    logger.info("Application shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))


app = FastAPI(
    title="Re-engagement Notifications",
    description="Sends push notifications that bring inactive users back to their chats",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(notifications.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
