# app/main.py
"""
Meeting planner API with cache lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware.request_context import RequestContextMiddleware
from app.routes import availability, contacts, health, meetings, venues
from app.services.infrastructure.redis_client import cache_store

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    # Cache errors count as misses, so start without Redis if it is down.
    try:
        logger.info("Initializing Redis connection")
        await cache_store.initialize()
        logger.info("All services initialized successfully", services=["redis"])
    except Exception as e:
        logger.error("Redis unavailable at startup, continuing without cache", error=str(e))

    yield

    logger.info("Application shutting down")
    try:
        logger.info("Closing Redis connection")
        await cache_store.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))


app = FastAPI(
    title="Meeting Planner",
    description="Meeting proposals: participant resolution, availability and venue ranking",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(contacts.router)
app.include_router(availability.router)
app.include_router(venues.router)
app.include_router(meetings.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


# Added last so it wraps the request logger and the request id is bound first.
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
