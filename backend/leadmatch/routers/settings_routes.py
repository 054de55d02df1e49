"""Global settings API endpoints - API configs, notifications, schedule."""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List
import logging

from leadmatch.database import get_db
from leadmatch.dependencies import get_emitter, get_job_registry, get_rate_limiter
from leadmatch.scheduler import JobRegistry
from leadmatch.schemas.settings import ApiConfig, GlobalSettings, GlobalSettingsUpdate, NotificationConfig
from leadmatch.services.api_import import ApiImportService
from leadmatch.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", response_model=GlobalSettings)
async def get_settings(db: AsyncSession = Depends(get_db)):
    return await SettingsStore(db).get_global_settings()


@router.put("", response_model=GlobalSettings)
async def save_settings(
    request: GlobalSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    registry: JobRegistry = Depends(get_job_registry),
):
    """Save settings; API jobs are reinstalled when APIs or the schedule change."""
    saved = await SettingsStore(db).update_global_settings(request)
    if request.schedule is not None or request.apis is not None:
        job_ids = registry.restart_api_jobs(saved)
        logger.info(f"🔁 Reinstalled {len(job_ids)} API jobs")
    return saved


@router.patch("/apis/{api_id}", response_model=ApiConfig)
async def update_api_config(
    api_id: str,
    patch: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    registry: JobRegistry = Depends(get_job_registry),
):
    store = SettingsStore(db)
    updated = await store.update_api_config(api_id, patch)
    if patch.keys() & {"schedule", "enabled"}:
        registry.restart_api_jobs(await store.get_global_settings())
    return updated


@router.post("/apis/{api_id}/execute")
async def execute_api(
    api_id: str,
    db: AsyncSession = Depends(get_db),
    emitter=Depends(get_emitter),
    rate_limiter=Depends(get_rate_limiter),
):
    """Run one API config now, outside its schedule."""
    service = ApiImportService(db, emitter=emitter, rate_limiter=rate_limiter)
    return await service.trigger_api_execution(api_id)


@router.get("/notifications/{trigger}", response_model=List[NotificationConfig])
async def get_enabled_notifications(trigger: str, db: AsyncSession = Depends(get_db)):
    return await SettingsStore(db).get_enabled_notifications(trigger)
