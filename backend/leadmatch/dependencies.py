"""FastAPI dependencies for the process-wide runtime objects."""

from fastapi import Request

from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.scheduler import JobRegistry
from leadmatch.services.notifications import NotificationEmitter
from leadmatch.services.user_sync import UserLeadSyncService


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_emitter(request: Request) -> NotificationEmitter:
    return request.app.state.emitter


def get_sync_service(request: Request) -> UserLeadSyncService:
    return request.app.state.sync_service


def get_job_registry(request: Request) -> JobRegistry:
    return request.app.state.job_registry
