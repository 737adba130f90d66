"""
Scholarship Intake API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Redis connection (submission lock) and database connection (SQL store)
- Store, storage and submission service construction
- Background job scheduler
- CORS middleware
- API routing and health check endpoints
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.redis import close_redis, init_redis, is_redis_available
from app.core.scheduler import start_scheduler, stop_scheduler
from app.modules.scholarship_applications.backends import build_submission_service
from app.modules.scholarship_applications.jobs import register_scholarship_application_jobs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown of Redis, the database (when the SQL store
    is configured), the submission service and the job scheduler.
    """
    print(f"Starting Scholarship Intake API in {settings.python_env} mode...")

    # Redis is optional outside production; without it the submission lock
    # only covers this process
    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    if settings.store_backend == "database":
        try:
            await init_db()
            print("[OK] Database connected")
        except Exception as e:
            print(f"[FAIL] Database connection failed: {e}")
            raise

    app.state.submission_service = build_submission_service(settings)
    print(f"[OK] Submission service ready (store: {app.state.submission_service.store.name})")

    try:
        register_scholarship_application_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    print("Shutting down Scholarship Intake API...")

    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    if settings.store_backend == "database":
        await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Scholarship Intake API",
    description="Receives scholarship applications, archives documents and records them",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Scholarship Intake API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint (`lock` is "redis" when shared across workers)."""
    ready = getattr(app.state, "submission_service", None) is not None
    return {
        "status": "ready" if ready else "starting",
        "lock": "redis" if is_redis_available() else "local",
    }


def run() -> None:
    """Run the API with uvicorn on the configured port."""
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
