"""
CCP Guard - Critical Control Point compliance workflow.

FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ccpguard.app.api import ccp_checks, compliance, corrective_actions, health, incidents
from ccpguard.app.api.deps import get_workflow
from ccpguard.app.core.config import get_settings
from ccpguard.app.core.database import init_db
from ccpguard.app.core.logging import get_logger, setup_logging
from ccpguard.app.middleware.trace import TracingMiddleware

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    await init_db()

    yield
    # Shutdown: let in-flight notifications finish before the loop closes
    await get_workflow().fanout.drain()
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="Critical Control Point checks, food-safety incidents and corrective actions",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add Middleware
app.add_middleware(TracingMiddleware)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    ccp_checks.router,
    prefix=f"{settings.api_prefix}/ccp-checks",
    tags=["CCP Checks"],
)
app.include_router(
    incidents.router,
    prefix=f"{settings.api_prefix}/incidents",
    tags=["Food Safety Incidents"],
)
app.include_router(
    corrective_actions.router,
    prefix=f"{settings.api_prefix}/corrective-actions",
    tags=["Corrective Actions"],
)
app.include_router(
    compliance.router,
    prefix=f"{settings.api_prefix}/compliance",
    tags=["Compliance"],
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
