"""Lead sync API endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from leadmatch.database import get_db
from leadmatch.dependencies import get_emitter, get_rate_limiter, get_sync_service
from leadmatch.services.api_import import ApiImportService
from leadmatch.services.user_sync import UserLeadSyncService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post("/users/{user_id}")
async def trigger_manual_sync(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    sync_service: UserLeadSyncService = Depends(get_sync_service),
):
    """Run a provider sync for one user now."""
    report = await sync_service.trigger_manual_sync_for_user(user_id, db=db)
    return report.to_dict()


@router.post("/all", status_code=202)
async def trigger_full_sync(
    background_tasks: BackgroundTasks,
    sync_service: UserLeadSyncService = Depends(get_sync_service),
):
    """Start the all-user sweep in the background."""
    background_tasks.add_task(sync_service.sync_leads_for_all_users)
    return {"message": "Lead sync for all users started"}


@router.post("/demo/{source}")
async def import_demo_leads(
    source: str,
    user_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    emitter=Depends(get_emitter),
    rate_limiter=Depends(get_rate_limiter),
):
    service = ApiImportService(db, emitter=emitter, rate_limiter=rate_limiter)
    return await service.import_demo_leads(source, user_id=user_id)
