"""
backend/pickem/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring and the scheduler
    lifecycle for automated survivor reconciliation.

Dependencies:
    - pickem.database
    - pickem.workers.survivor_reconciler
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

import pickem.database as _db
from pickem.config import settings
from pickem.database import close_db, connect_db
from pickem.middleware.logging import StructuredLoggingMiddleware, setup_logging
from pickem.services.survivor_errors import DataUnavailable

logger = logging.getLogger("pickem")
scheduler = AsyncIOScheduler()
_SURVIVOR_JOB_ID = "survivor_reconciler"


def set_survivor_autorun(enabled: bool) -> dict:
    """Add or remove the interval job that reconciles the current week."""
    from pickem.workers.survivor_reconciler import reconcile_current_week

    job = scheduler.get_job(_SURVIVOR_JOB_ID)
    if enabled and not job:
        scheduler.add_job(
            reconcile_current_week,
            "interval",
            id=_SURVIVOR_JOB_ID,
            replace_existing=True,
            minutes=settings.SURVIVOR_RECONCILE_INTERVAL_MINUTES,
        )
    elif not enabled and job:
        scheduler.remove_job(_SURVIVOR_JOB_ID)
    return {"enabled": scheduler.get_job(_SURVIVOR_JOB_ID) is not None}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    scheduler.start()
    set_survivor_autorun(settings.SURVIVOR_AUTORUN_ENABLED)
    if settings.SURVIVOR_AUTORUN_ENABLED:
        logger.info(
            "Survivor reconciliation scheduled every %d minutes",
            settings.SURVIVOR_RECONCILE_INTERVAL_MINUTES,
        )
    else:
        logger.info("Survivor reconciliation autorun disabled via config")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await close_db()


app = FastAPI(
    title="Pick'em Survivor",
    description="Survivor pool reconciliation for weekly NFL picks",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from pickem.routers.survivor import router as survivor_router

app.include_router(survivor_router)


@app.exception_handler(DataUnavailable)
async def data_unavailable_handler(request: Request, exc: DataUnavailable):
    logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid input."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check -- verifies DB connection and scheduler state."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "survivor_autorun": scheduler.get_job(_SURVIVOR_JOB_ID) is not None,
    }
