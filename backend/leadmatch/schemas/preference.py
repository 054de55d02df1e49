"""User preference schemas - the weighted matching configuration."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _clamp_percentage(value: Any) -> Any:
    """Clamp numeric input into [0, 100]; leave anything else for pydantic."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return max(0, min(100, value))


# Weights and thresholds are clamped per field, never validated against each other
Percentage = Annotated[float, BeforeValidator(_clamp_percentage)]


class Timeframe(str, Enum):
    """Recency window for a trigger event."""
    ONE_MONTH = "1month"
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    TWELVE_MONTHS = "12months"
    TWENTY_FOUR_MONTHS = "24months"


class NotificationFrequency(str, Enum):
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


PROVIDER_NAMES = ("crunchbase", "hunter", "clearbit", "linkedin")


class GeographicCriteria(BaseModel):
    cities: List[str] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
    countries: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    radius: float = Field(default=50, ge=0, le=1000)
    radius_unit: Literal["km", "miles"] = "km"


class BusinessCriteria(BaseModel):
    industries: List[str] = Field(default_factory=list)
    company_sizes: List[str] = Field(default_factory=list)
    revenue_ranges: List[str] = Field(default_factory=list)
    employee_ranges: List[str] = Field(default_factory=list)
    company_types: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)
    business_models: List[str] = Field(default_factory=list)


class TriggerTimeframes(BaseModel):
    last_funding: Timeframe = Timeframe.SIX_MONTHS
    last_hiring: Timeframe = Timeframe.THREE_MONTHS
    last_expansion: Timeframe = Timeframe.TWELVE_MONTHS
    last_website_update: Timeframe = Timeframe.THREE_MONTHS


class TriggerCriteria(BaseModel):
    events: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    timeframes: TriggerTimeframes = Field(default_factory=TriggerTimeframes)


class ScoringWeights(BaseModel):
    """
    Points awarded per dimension.

    Weights are not required to sum to 100; the final score is capped at 100.
    """
    industry: Percentage = 25
    size: Percentage = 20
    location: Percentage = 15
    technology: Percentage = 20
    triggers: Percentage = 15
    revenue: Percentage = 5


class ScoringThresholds(BaseModel):
    """Cut points; `minimum` is the admission bar for a match."""
    minimum: Percentage = 40
    low: Percentage = 40
    medium: Percentage = 60
    high: Percentage = 80


class ScoringConfig(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)


class NotificationFilters(BaseModel):
    minimum_score: Percentage = 60
    industries: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)


class NotificationPreferences(BaseModel):
    email: bool = True
    sms: bool = False
    push: bool = True
    frequency: NotificationFrequency = NotificationFrequency.DAILY
    filters: NotificationFilters = Field(default_factory=NotificationFilters)

    def enabled_channels(self) -> List[str]:
        return [channel for channel in ("email", "sms", "push") if getattr(self, channel)]


class ProviderEndpoints(BaseModel):
    crunchbase: str = "https://api.crunchbase.com/v4"
    hunter: str = "https://api.hunter.io/v2"
    clearbit: str = "https://api.clearbit.com/v1"
    linkedin: str = "https://api.linkedin.com/v2"


class ProviderKeys(BaseModel):
    crunchbase: str = ""
    hunter: str = ""
    clearbit: str = ""
    linkedin: str = ""

    def configured(self) -> List[str]:
        """Provider names with a non-empty key, in sync order."""
        return [name for name in PROVIDER_NAMES if getattr(self, name)]


class RateLimitBudget(BaseModel):
    requests_per_minute: int = Field(default=100, ge=1)
    requests_per_hour: int = Field(default=5000, ge=1)
    requests_per_day: int = Field(default=50000, ge=1)


class ApiPreferences(BaseModel):
    endpoints: ProviderEndpoints = Field(default_factory=ProviderEndpoints)
    keys: ProviderKeys = Field(default_factory=ProviderKeys)
    rate_limits: RateLimitBudget = Field(default_factory=RateLimitBudget)
    custom_keys: Dict[str, str] = Field(default_factory=dict)


class PreferenceConfig(BaseModel):
    """
    A user's complete matching configuration.

    `custom_filters` and `data_keys` are opaque pass-through maps; the scoring
    engine never reads them.
    """
    geographic: GeographicCriteria = Field(default_factory=GeographicCriteria)
    business: BusinessCriteria = Field(default_factory=BusinessCriteria)
    triggers: TriggerCriteria = Field(default_factory=TriggerCriteria)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    api: ApiPreferences = Field(default_factory=ApiPreferences)
    custom_filters: Dict[str, List[str]] = Field(default_factory=dict)
    data_keys: Dict[str, str] = Field(default_factory=dict)


class PreferenceUpdate(BaseModel):
    """Partial preference document; nested sections are deep-merged."""
    preferences: Dict[str, Any] = Field(default_factory=dict)


class PreferenceStats(BaseModel):
    total_leads: int = 0
    qualified_leads: int = 0
    converted_leads: int = 0
    last_sync: Optional[datetime] = None
    api_calls: int = 0
    success_rate: float = 0


class PreferenceResponse(BaseModel):
    id: str
    user_id: str
    preferences: PreferenceConfig
    stats: PreferenceStats
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserStatistics(PreferenceStats):
    conversion_rate: int = 0
    qualification_rate: int = 0
