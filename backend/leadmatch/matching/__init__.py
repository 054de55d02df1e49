"""
Lead matching engine.

Scores candidate leads against a user's weighted preference, fetches
candidates from external sources, and merges them into one sync report.
"""
from .scoring import (
    ScoreBreakdown,
    score_breakdown,
    calculate_lead_score,
    matches_lead,
    priority_for_score,
    lead_attributes,
)

__all__ = [
    "ScoreBreakdown",
    "score_breakdown",
    "calculate_lead_score",
    "matches_lead",
    "priority_for_score",
    "lead_attributes",
]
