"""
Weighted rule scoring.

A candidate earns the full weight of a dimension on a membership match
(industry, size, location, revenue) and a fractional share of the weight for
list dimensions (technologies, trigger events). Components are summed,
rounded once, and capped at 100.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from leadmatch.schemas.preference import PreferenceConfig


DIMENSIONS = ("industry", "size", "location", "technology", "triggers", "revenue")


@dataclass
class ScoreBreakdown:
    """Per-dimension points and matched flags for one candidate."""
    components: Dict[str, float] = field(default_factory=lambda: {d: 0.0 for d in DIMENSIONS})
    matched: Dict[str, bool] = field(default_factory=lambda: {d: False for d in DIMENSIONS})

    @property
    def raw_total(self) -> float:
        return sum(self.components.values())

    @property
    def score(self) -> int:
        # Half-up rounding, then the cap; weights may sum above 100
        return min(100, int(math.floor(self.raw_total + 0.5)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "components": dict(self.components),
            "matched": dict(self.matched),
        }


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _fraction(candidates: Iterable[Any], targets: List[str]) -> float:
    candidates = _as_list(candidates)
    if not candidates:
        return 0.0
    hits = sum(1 for item in candidates if item in targets)
    return hits / len(candidates)


def _config(preference: Any) -> PreferenceConfig:
    if isinstance(preference, PreferenceConfig):
        return preference
    if hasattr(preference, "config"):
        return preference.config
    return PreferenceConfig.model_validate(preference or {})


def score_breakdown(preference: Any, candidate: Mapping[str, Any]) -> ScoreBreakdown:
    """
    Evaluate every dimension of `candidate` against `preference`.

    Missing candidate fields contribute 0. `preference` may be a
    PreferenceConfig, a UserPreference row, or a raw preference dict.
    """
    config = _config(preference)
    weights = config.scoring.weights
    business = config.business
    geo = config.geographic
    result = ScoreBreakdown()

    industry = candidate.get("industry")
    if industry is not None and industry in business.industries:
        result.components["industry"] = weights.industry
        result.matched["industry"] = True

    employee_range = candidate.get("employee_range")
    if employee_range is not None and employee_range in business.employee_ranges:
        result.components["size"] = weights.size
        result.matched["size"] = True

    # First matching level wins; no extra credit for matching several
    for key, targets in (("city", geo.cities), ("state", geo.states), ("country", geo.countries)):
        value = candidate.get(key)
        if value is not None and value in targets:
            result.components["location"] = weights.location
            result.matched["location"] = True
            break

    technologies = _as_list(candidate.get("technologies"))
    if technologies:
        fraction = _fraction(technologies, business.technologies)
        result.components["technology"] = weights.technology * fraction
        result.matched["technology"] = fraction > 0

    events = _as_list(candidate.get("trigger_events"))
    if events:
        fraction = _fraction(events, config.triggers.events)
        result.components["triggers"] = weights.triggers * fraction
        result.matched["triggers"] = fraction > 0

    revenue_range = candidate.get("revenue_range")
    if revenue_range is not None and revenue_range in business.revenue_ranges:
        result.components["revenue"] = weights.revenue
        result.matched["revenue"] = True

    return result


def calculate_lead_score(preference: Any, candidate: Mapping[str, Any]) -> int:
    return score_breakdown(preference, candidate).score


def matches_lead(preference: Any, candidate: Mapping[str, Any]) -> bool:
    """True when the candidate reaches the minimum threshold (inclusive)."""
    config = _config(preference)
    return calculate_lead_score(config, candidate) >= config.scoring.thresholds.minimum


def priority_for_score(score: int) -> str:
    if score >= 80:
        return "High"
    if score >= 60:
        return "Medium"
    return "Low"


# Stored leads may carry scoring inputs under either name
_LEAD_FIELD_ALIASES = {
    "industry": ("industry",),
    "city": ("city",),
    "state": ("state",),
    "country": ("country",),
    "employee_range": ("employee_range", "employeeRange", "company_size", "companySize"),
    "revenue_range": ("revenue_range", "revenueRange"),
    "technologies": ("technologies",),
    "trigger_events": ("trigger_events", "triggerEvents"),
}


def _lookup(lead: Any, names: Iterable[str]) -> Optional[Any]:
    bag = getattr(lead, "custom_fields", None) if not isinstance(lead, Mapping) else lead.get("custom_fields")
    bag = bag or {}
    for name in names:
        value = lead.get(name) if isinstance(lead, Mapping) else getattr(lead, name, None)
        if value not in (None, "", []):
            return value
    for name in names:
        value = bag.get(name)
        if value not in (None, "", []):
            return value
    return None


def lead_attributes(lead: Any) -> Dict[str, Any]:
    """
    Read the scoring inputs of a stored lead.

    Top-level fields are preferred over the `custom_fields` bag. A lead
    without trigger events falls back to its status.
    """
    attributes = {key: _lookup(lead, names) for key, names in _LEAD_FIELD_ALIASES.items()}
    if attributes["trigger_events"] is None:
        status = lead.get("status") if isinstance(lead, Mapping) else getattr(lead, "status", None)
        attributes["trigger_events"] = [status] if status else []
    attributes["technologies"] = _as_list(attributes["technologies"])
    attributes["trigger_events"] = _as_list(attributes["trigger_events"])
    return attributes
