"""Global settings schemas - admin API configurations, notifications, scheduling."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ApiConfig(BaseModel):
    """One admin-defined import API with its own cron schedule."""
    id: str
    name: str
    url: str
    method: Literal["GET", "POST"] = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    field_mapping: Dict[str, str] = Field(default_factory=dict)
    schedule: str = "0 12 * * *"
    enabled: bool = False
    last_run: Optional[datetime] = None
    status: Literal["pending", "success", "error"] = "pending"


class NotificationChannelSettings(BaseModel):
    title: Optional[str] = None
    icon: Optional[str] = None
    email: Optional[str] = None
    template: Optional[str] = None
    phone: Optional[str] = None
    provider: Optional[str] = None
    webhook: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    method: Literal["GET", "POST"] = "POST"


class NotificationConfig(BaseModel):
    id: str
    name: str
    type: Literal["browser", "email", "sms", "webhook"]
    enabled: bool = True
    triggers: List[str] = Field(default_factory=list)
    settings: NotificationChannelSettings = Field(default_factory=NotificationChannelSettings)


class ScheduleConfig(BaseModel):
    enabled: bool = True
    timezone: str = "Asia/Kolkata"
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=5, ge=0)  # minutes
    max_leads_per_run: int = Field(default=1000, ge=1)


def default_notifications() -> List[NotificationConfig]:
    return [
        NotificationConfig(
            id="browser_new_leads",
            name="Browser - New Leads",
            type="browser",
            triggers=["new_leads"],
            settings=NotificationChannelSettings(title="New Leads Available", icon="/favicon.ico"),
        ),
        NotificationConfig(
            id="browser_api_errors",
            name="Browser - API Errors",
            type="browser",
            triggers=["api_errors"],
            settings=NotificationChannelSettings(title="API Error Occurred", icon="/favicon.ico"),
        ),
        NotificationConfig(
            id="browser_daily_summary",
            name="Browser - Daily Summary",
            type="browser",
            enabled=False,
            triggers=["daily_summary"],
            settings=NotificationChannelSettings(title="Daily Lead Summary", icon="/favicon.ico"),
        ),
    ]


class GlobalSettings(BaseModel):
    apis: List[ApiConfig] = Field(default_factory=list)
    notifications: List[NotificationConfig] = Field(default_factory=default_notifications)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    updated_by: str = "system"

    def get_api(self, api_id: str) -> Optional[ApiConfig]:
        return next((api for api in self.apis if api.id == api_id), None)


class GlobalSettingsUpdate(BaseModel):
    apis: Optional[List[ApiConfig]] = None
    notifications: Optional[List[NotificationConfig]] = None
    schedule: Optional[ScheduleConfig] = None
    updated_by: Optional[str] = None
