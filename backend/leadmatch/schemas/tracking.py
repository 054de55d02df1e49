"""Lead tracking schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TrackingStatus(str, Enum):
    MATCHED = "matched"
    VIEWED = "viewed"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    REJECTED = "rejected"


TERMINAL_STATUSES = {TrackingStatus.CONVERTED.value, TrackingStatus.REJECTED.value}

NOTIFICATION_CHANNELS = ("email", "sms", "push", "browser")


class MatchedCriteria(BaseModel):
    industry: bool = False
    location: bool = False
    size: bool = False
    technology: bool = False
    triggers: bool = False
    revenue: bool = False


class TrackingAction(BaseModel):
    type: str
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)
    performed_by: Optional[str] = None


class TrackingNotification(BaseModel):
    channel_type: str
    sent: bool = False
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)


class TrackingResponse(BaseModel):
    id: str
    user_id: str
    lead_id: str
    preference_id: str
    score: int
    status: TrackingStatus
    matched_criteria: MatchedCriteria
    actions: List[TrackingAction] = Field(default_factory=list)
    notifications: List[TrackingNotification] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="tracking_metadata")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class StatusUpdateRequest(BaseModel):
    status: TrackingStatus
    details: Dict[str, Any] = Field(default_factory=dict)


class ActionCreateRequest(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    details: Dict[str, Any] = Field(default_factory=dict)


class MatchRequest(BaseModel):
    limit: int = Field(default=100, ge=1, le=1000)
