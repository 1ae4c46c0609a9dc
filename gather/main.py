"""Gather Backend main application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from gather.api.communities import router as communities_router
from gather.api.health import router as health_router
from gather.api.join_requests import router as join_requests_router
from gather.core.cache import membership_cache
from gather.core.config import settings
from gather.core.logging import (
    configure_sqlalchemy_logging,
    get_logger,
    setup_logging,
)
from gather.core.observability.metrics import log_metric

# Initialize logging first
setup_logging()
configure_sqlalchemy_logging(echo=settings.SQL_ECHO)

# Get logger after setup
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        f"{settings.PROJECT_NAME} backend starting "
        f"(environment={settings.ENVIRONMENT}, api={settings.API_V1_STR})"
    )
    log_metric("app_lifecycle", phase="startup")
    yield
    log_metric(
        "app_lifecycle",
        phase="shutdown",
        membership_cache_entries=len(membership_cache),
    )
    logger.info(f"{settings.PROJECT_NAME} backend stopped")


app = FastAPI(
    title="Gather Backend",
    description="Community membership and join-request backend",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(communities_router, prefix=settings.API_V1_STR)
app.include_router(join_requests_router, prefix=settings.API_V1_STR)
app.include_router(health_router, tags=["health"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Gather Backend is running", "status": "healthy"}
