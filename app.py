"""
DoseRhythm Backend
Main FastAPI application: dose logging, adherence reporting and adaptive reminders
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Configuration and database
from config import settings
from database import get_db_context, init_db

from api import include_routers, services
from exceptions import (
    DoseRhythmError,
    NotFoundError,
    NotificationSchedulingError,
    TransientStoreError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== BACKGROUND ANALYSIS ====================

async def run_pattern_recompute() -> Dict[str, Any]:
    """One analysis pass in its own session"""
    analyzer = services.get_pattern_analyzer()
    with get_db_context() as db:
        result = await analyzer.recompute_reminder_patterns(db)
    return result.to_dict()


async def pattern_recompute_loop(interval_hours: float) -> None:
    """Recompute patterns forever, every interval_hours"""
    while True:
        await asyncio.sleep(interval_hours * 60 * 60)
        try:
            await run_pattern_recompute()
        except Exception as e:
            logger.error(f"Periodic pattern recompute failed: {e}", exc_info=True)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}, timezone: {settings.TIMEZONE}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    if settings.PATTERN_RECOMPUTE_ON_STARTUP:
        try:
            await run_pattern_recompute()
            with get_db_context() as db:
                await services.get_medication_service().retry_unreminded(db=db)
        except DoseRhythmError as e:
            logger.error(f"Startup maintenance failed: {e.message}")

    recompute_task = None
    if settings.PATTERN_RECOMPUTE_INTERVAL_HOURS > 0:
        recompute_task = asyncio.create_task(
            pattern_recompute_loop(settings.PATTERN_RECOMPUTE_INTERVAL_HOURS)
        )

    yield

    # Shutdown
    if recompute_task is not None:
        recompute_task.cancel()
        try:
            await recompute_task
        except asyncio.CancelledError:
            pass
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## DoseRhythm API

    Medication reminders that adapt to how doses are actually taken.

    ### Features
    - **Dose Log**: Taken, missed, snoozed and skipped doses per time slot
    - **Adherence Reports**: Daily summaries, streaks, trends and time-of-day breakdowns
    - **Adaptive Reminders**: Learns per-slot habits and suggests better reminder times
    - **Pre-alerts**: Early warnings for slots that are often missed or snoozed
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers (prefix /api/v1)
include_routers(app, prefix=settings.API_PREFIX)


# ==================== EXCEPTION HANDLERS ====================

ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    TransientStoreError: 503,
    NotificationSchedulingError: 502,
}


def error_response(status_code: int, error: str, message: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(DoseRhythmError)
async def domain_exception_handler(request, exc: DoseRhythmError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500
    )
    return error_response(status_code, exc.__class__.__name__, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return error_response(exc.status_code, "HTTPException", exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    return error_response(422, "RequestValidationError", str(exc.errors()))


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(
        500,
        "InternalServerError",
        "An unexpected error occurred" if not settings.DEBUG else str(exc)
    )


# ==================== ROOT ENDPOINTS ====================

@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
