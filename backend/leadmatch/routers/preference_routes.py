"""User preference API endpoints."""

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
import logging

from leadmatch.database import get_db
from leadmatch.dependencies import get_rate_limiter
from leadmatch.matching.adapters import get_adapter
from leadmatch.exceptions import ValidationError
from leadmatch.schemas.preference import PROVIDER_NAMES, PreferenceResponse, PreferenceUpdate, UserStatistics
from leadmatch.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/preferences", tags=["preferences"])


class ConnectionTestRequest(BaseModel):
    api_key: str
    endpoint: Optional[str] = None


@router.get("/{user_id}", response_model=PreferenceResponse)
async def get_preferences(user_id: str, db: AsyncSession = Depends(get_db)):
    preference = await PreferenceStore(db).require_preference(user_id)
    return PreferenceResponse.model_validate(preference)


@router.put("/{user_id}", response_model=PreferenceResponse)
async def upsert_preferences(user_id: str, request: PreferenceUpdate, db: AsyncSession = Depends(get_db)):
    """Create or deep-merge a user's preferences."""
    preference = await PreferenceStore(db).upsert_preference(user_id, request.preferences)
    return PreferenceResponse.model_validate(preference)


@router.delete("/{user_id}")
async def delete_preferences(user_id: str, db: AsyncSession = Depends(get_db)):
    await PreferenceStore(db).delete_preference(user_id)
    return {"message": "User preferences deleted successfully"}


@router.get("/{user_id}/stats", response_model=UserStatistics)
async def get_user_statistics(user_id: str, db: AsyncSession = Depends(get_db)):
    return await PreferenceStore(db).get_user_statistics(user_id)


@router.post("/{user_id}/test-match")
async def test_lead_match(
    user_id: str,
    lead_data: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Score one lead against the user's preference without storing anything."""
    return await PreferenceStore(db).test_lead_match(user_id, lead_data)


@router.post("/test-connection/{provider}")
async def test_provider_connection(
    provider: str,
    request: ConnectionTestRequest,
    rate_limiter=Depends(get_rate_limiter),
):
    if provider not in PROVIDER_NAMES:
        raise ValidationError(f"Unknown provider: {provider}", field="provider", available=list(PROVIDER_NAMES))
    adapter = get_adapter(provider, rate_limiter)
    return await adapter.test_connection(request.endpoint, request.api_key)
