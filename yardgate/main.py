"""
yardgate API application.

Run with uvicorn:

    uvicorn yardgate.main:app --host 0.0.0.0 --port 8000

Apply migrations first in production (``alembic upgrade head``); for local
SQLite runs the lifespan hook creates any missing tables.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from yardgate.config import settings
from yardgate.api.v1.router import api_router
from yardgate.core.exceptions import YardError
from yardgate.database import init_db, async_session_factory
from yardgate.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Configure logging
    - Create missing tables (development / SQLite; production runs alembic)
    """
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    yield
    logger.info(f"Shutting down {settings.APP_NAME}")


API_DESCRIPTION = """
## Yard Truck Lifecycle API

Tracks trucks through the yard checkpoints:
**Upcoming -> At Gate -> (allowed | held | external parking) -> Inside -> Weighbridge / Internal Parking -> Exited**

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Validation failure - rejected before any write |
| 401 | Unauthorized - invalid or missing token |
| 403 | Forbidden - administrator role required |
| 404 | Not Found - truck, approval request or dock |
| 409 | Conflict - stale version, duplicate weight slot, already decided approval |
| 422 | Precondition not met - gate closed or illegal transition |
| 503 | Database unavailable |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(YardError)
async def yard_error_handler(request: Request, exc: YardError):
    """Map domain errors to their HTTP status with a uniform body."""
    content = {
        "error": exc.message,
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if exc.truck_id:
        content["truck_id"] = exc.truck_id
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus a round trip to the yard database."""
    checks = {"database": "unknown"}
    healthy = True
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        checks["database"] = f"error: {e}"
        healthy = False

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
    if not healthy:
        return JSONResponse(status_code=503, content=body)
    return body


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
