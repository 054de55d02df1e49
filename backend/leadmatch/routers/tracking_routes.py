"""Lead tracking API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from leadmatch.database import get_db
from leadmatch.dependencies import get_emitter
from leadmatch.schemas.tracking import (
    ActionCreateRequest,
    MatchRequest,
    StatusUpdateRequest,
    TrackingResponse,
    TrackingStatus,
)
from leadmatch.services.tracking_ledger import TrackingLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/tracking", tags=["tracking"])


def get_ledger(db: AsyncSession = Depends(get_db), emitter=Depends(get_emitter)) -> TrackingLedger:
    return TrackingLedger(db, emitter=emitter)


@router.get("/users/{user_id}/leads")
async def get_tracked_leads(
    user_id: str,
    status: Optional[TrackingStatus] = None,
    min_score: Optional[int] = Query(None, ge=0, le=100),
    max_score: Optional[int] = Query(None, ge=0, le=100),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ledger: TrackingLedger = Depends(get_ledger),
):
    """List a user's tracked leads with filters and pagination."""
    result = await ledger.list_tracked_leads(
        user_id,
        status=status.value if status else None,
        min_score=min_score,
        max_score=max_score,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "leads": [TrackingResponse.model_validate(row) for row in result["leads"]],
        "pagination": result["pagination"],
    }


@router.get("/users/{user_id}/stats")
async def get_tracking_stats(user_id: str, ledger: TrackingLedger = Depends(get_ledger)):
    return await ledger.get_tracking_stats(user_id)


@router.post("/users/{user_id}/match")
async def match_leads_for_user(
    user_id: str,
    request: Optional[MatchRequest] = None,
    ledger: TrackingLedger = Depends(get_ledger),
):
    """Score stored leads against the user's preference and track new matches."""
    return await ledger.match_leads_for_user(user_id, limit=request.limit if request else None)


@router.put("/users/{user_id}/leads/{tracking_id}/status", response_model=TrackingResponse)
async def update_tracking_status(
    user_id: str,
    tracking_id: str,
    request: StatusUpdateRequest,
    ledger: TrackingLedger = Depends(get_ledger),
):
    tracking = await ledger.update_status(
        user_id, tracking_id, request.status.value, request.details, performed_by=user_id
    )
    return TrackingResponse.model_validate(tracking)


@router.post("/users/{user_id}/leads/{tracking_id}/actions", response_model=TrackingResponse)
async def add_tracking_action(
    user_id: str,
    tracking_id: str,
    request: ActionCreateRequest,
    ledger: TrackingLedger = Depends(get_ledger),
):
    tracking = await ledger.add_action(
        user_id, tracking_id, request.type, request.details, performed_by=user_id
    )
    return TrackingResponse.model_validate(tracking)


@router.get("/users/{user_id}/trending")
async def get_trending_leads(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    ledger: TrackingLedger = Depends(get_ledger),
):
    rows = await ledger.get_trending_leads(user_id, limit=limit)
    return [TrackingResponse.model_validate(row) for row in rows]


@router.delete("/users/{user_id}/leads/{tracking_id}")
async def delete_tracking(user_id: str, tracking_id: str, ledger: TrackingLedger = Depends(get_ledger)):
    await ledger.delete_tracking(user_id, tracking_id)
    return {"message": "Lead tracking deleted successfully"}
