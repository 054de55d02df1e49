"""Main FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from leadmatch import __version__
from leadmatch.config import settings
from leadmatch.database import Base
from leadmatch.exceptions import LeadMatchError
from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.matching.core.sync_orchestrator import SyncOrchestrator
from leadmatch.routers import preference_routes, settings_routes, sync_routes, tracking_routes
from leadmatch.scheduler import JobRegistry
from leadmatch.services.notifications import NotificationEmitter
from leadmatch.services.user_sync import UserLeadSyncService
from leadmatch.websocket import get_connection_stats, socket_app

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LeadMatch API",
    description="Preference-driven lead scoring, tracking and provider sync",
    version=__version__,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================
# PROCESS-WIDE RUNTIME
# ============================================

rate_limiter = RateLimiter()
emitter = NotificationEmitter()
sync_service = UserLeadSyncService(orchestrator=SyncOrchestrator(rate_limiter=rate_limiter))
job_registry = JobRegistry(sync_service=sync_service, emitter=emitter, rate_limiter=rate_limiter)

app.state.rate_limiter = rate_limiter
app.state.emitter = emitter
app.state.sync_service = sync_service
app.state.job_registry = job_registry


@app.exception_handler(LeadMatchError)
async def leadmatch_error_handler(request: Request, exc: LeadMatchError):
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ============================================
# ROUTER REGISTRATION
# ============================================

app.include_router(tracking_routes.router)
app.include_router(preference_routes.router)
app.include_router(sync_routes.router)
app.include_router(settings_routes.router)

app.mount("/socket.io", socket_app)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "registered_tables": len(Base.metadata.tables),
        "scheduled_jobs": job_registry.job_count,
        "connections": get_connection_stats(),
    }


@app.get("/")
async def root():
    return {
        "message": "LeadMatch API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# ============================================
# STARTUP & SHUTDOWN
# ============================================

@app.on_event("startup")
async def startup_event():
    logger.info("Starting LeadMatch API...")
    logger.info(f"Registered {len(Base.metadata.tables)} SQLAlchemy tables")

    if settings.SCHEDULER_ENABLED:
        await job_registry.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")

    logger.info("Application started successfully!")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down LeadMatch API...")
    job_registry.shutdown()
