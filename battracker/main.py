"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from battracker.api.routes import bats
from battracker.config import settings
from battracker.db.models import Base
from battracker.db.session import engine
from battracker.logging_config import setup_logging
from battracker.worker.scheduler import setup_scheduler

setup_logging()
logger = logging.getLogger(__name__)

# Global scheduler
scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global scheduler

    logger.info("Starting Bat Price Tracker...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.scheduler_enabled:
        scheduler = setup_scheduler()
        scheduler.start()
        logger.info("Scheduler started")

    yield

    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown()
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Bat Price Tracker",
    description="Compare baseball bat prices across retailers",
    version="0.1.0",
    lifespan=lifespan,
)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

app.include_router(bats.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(
        "battracker.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )
