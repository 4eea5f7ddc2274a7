"""Question bank FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from questionbank.config import settings
from questionbank.exception_handlers import register_exception_handlers
from questionbank.middleware import configure_logging, register_middleware
from questionbank.routers import questions_router
from questionbank.schemas import HealthResponse
from questionbank.services.audit import audit_recorder
from questionbank.services.scheduler import ScoreRecomputeScheduler


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager."""
    configure_logging()
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
    )
    scheduler = ScoreRecomputeScheduler()
    if settings.score_recompute_enabled:
        scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await audit_recorder.drain()
        logger.info("Application shutting down")


app = FastAPI(
    title="Question Bank API",
    description="Multi-tenant quiz question bank with voting and review",
    version="0.1.0",
    lifespan=lifespan,
)

register_middleware(app)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(questions_router, prefix="/api")


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check() -> HealthResponse:
    """Health check endpoint for container orchestration."""
    return HealthResponse(
        status="healthy",
        service="questionbank-api",
        version="0.1.0",
    )
