"""Pydantic schemas for preferences, tracking and settings."""
from .preference import PreferenceConfig, PreferenceUpdate, PreferenceResponse, UserStatistics
from .tracking import (
    TrackingStatus,
    TrackingResponse,
    StatusUpdateRequest,
    ActionCreateRequest,
    MatchRequest,
)
from .settings import ApiConfig, NotificationConfig, ScheduleConfig, GlobalSettings

__all__ = [
    "PreferenceConfig",
    "PreferenceUpdate",
    "PreferenceResponse",
    "UserStatistics",
    "TrackingStatus",
    "TrackingResponse",
    "StatusUpdateRequest",
    "ActionCreateRequest",
    "MatchRequest",
    "ApiConfig",
    "NotificationConfig",
    "ScheduleConfig",
    "GlobalSettings",
]
