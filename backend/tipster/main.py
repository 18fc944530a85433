"""
backend/tipster/main.py

Purpose:
    FastAPI application bootstrap: middleware and router wiring, exception
    mapping for provider/league errors, and the scheduler lifecycle for the
    settlement, generation and archive jobs.

Dependencies:
    - tipster.database
    - tipster.workers
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

import tipster.database as _db
from tipster.config import settings
from tipster.database import close_db, connect_db
from tipster.leagues import UnknownLeagueError
from tipster.middleware.logging import StructuredLoggingMiddleware, setup_logging
from tipster.providers.api_football import api_football_provider
from tipster.providers.base import ProviderUnavailableError
from tipster.providers.football_data import football_data_provider

logger = logging.getLogger("tipster")
scheduler = AsyncIOScheduler()


def _build_job_specs() -> list[dict]:
    from tipster.workers.archive_worker import run_archive
    from tipster.workers.generation_worker import run_daily_generation
    from tipster.workers.settlement_worker import run_settlement

    return [
        {
            "id": "tip_settlement",
            "func": run_settlement,
            "trigger": "interval",
            "trigger_kwargs": {"hours": settings.SETTLEMENT_INTERVAL_HOURS},
        },
        {
            "id": "tip_generation",
            "func": run_daily_generation,
            "trigger": "cron",
            "trigger_kwargs": {
                "hour": settings.GENERATION_CRON_HOUR,
                "minute": settings.GENERATION_CRON_MINUTE,
            },
        },
        {
            "id": "tip_archive",
            "func": run_archive,
            "trigger": "cron",
            "trigger_kwargs": {"hour": settings.ARCHIVE_CRON_HOUR, "minute": 0},
        },
    ]


def _register_jobs() -> int:
    added = 0
    for spec in _build_job_specs():
        if scheduler.get_job(spec["id"]):
            continue
        scheduler.add_job(
            spec["func"],
            spec["trigger"],
            id=spec["id"],
            replace_existing=True,
            # overlapping passes are safe, but stacking them is pointless
            max_instances=1,
            coalesce=True,
            **spec["trigger_kwargs"],
        )
        added += 1
    return added


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    if settings.SCHEDULER_ENABLED:
        added = _register_jobs()
        scheduler.start()
        logger.info("Background scheduler started with %d jobs", added)
    else:
        logger.info("Background scheduler disabled via config")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await api_football_provider.aclose()
    await football_data_provider.aclose()
    await close_db()


app = FastAPI(
    title="Tipster",
    description="Tiered football tips: generation, settlement and accumulators",
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
from tipster.routers.fixtures import router as fixtures_router
from tipster.routers.tips import router as tips_router

app.include_router(fixtures_router)
app.include_router(tips_router)


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError):
    logger.error("Providers unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Upstream data providers unavailable."})


@app.exception_handler(UnknownLeagueError)
async def unknown_league_handler(request: Request, exc: UnknownLeagueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid ID."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "database": db_ok,
        "scheduler": scheduler.running,
        "jobs": [job.id for job in scheduler.get_jobs()],
    }
