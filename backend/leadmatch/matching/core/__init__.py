"""Core sync components: field mapping, rate limiting, dedup, orchestration."""
from .field_mapper import FieldMapper, extract_value, unwrap_items, employee_bucket, revenue_bucket
from .rate_limiter import RateLimiter
from .deduplicator import Deduplicator

__all__ = [
    "FieldMapper",
    "extract_value",
    "unwrap_items",
    "employee_bucket",
    "revenue_bucket",
    "RateLimiter",
    "Deduplicator",
]
