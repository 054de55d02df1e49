"""
Field mapper for normalizing provider payloads.

Maps fields from heterogeneous API responses onto the canonical lead shape
and converts raw employee/revenue counts into the shared bucket labels.
"""
import re
from typing import Any, Dict, List, Optional
import logging


logger = logging.getLogger(__name__)

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

# Envelope keys checked in order when a response is not a bare list
RESPONSE_ENVELOPES = ("data", "results", "organizations")

EMPLOYEE_BUCKETS = (
    (10, "1-10"),
    (50, "11-50"),
    (250, "51-250"),
    (1000, "251-1000"),
)

REVENUE_BUCKETS = (
    (1_000_000, "$0-$1M"),
    (10_000_000, "$1M-$10M"),
    (100_000_000, "$10M-$100M"),
    (1_000_000_000, "$100M-$1B"),
)


def extract_value(data: Any, path: str) -> Any:
    """
    Resolve a dotted path with optional list indices.

    Examples: "organization.name", "phones[0].number", "tags[2]".
    Any missing step yields None.
    """
    if not path:
        return None

    value = data
    for key, index in _PATH_TOKEN.findall(path):
        if key:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        else:
            position = int(index)
            if not isinstance(value, list) or len(value) <= position:
                return None
            value = value[position]
        if value is None:
            return None
    return value


def unwrap_items(payload: Any) -> List[Any]:
    """Return the record list from a bare list, a known envelope, or a single object."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for envelope in RESPONSE_ENVELOPES:
            if isinstance(payload.get(envelope), list):
                return payload[envelope]
        return [payload]
    return []


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def employee_bucket(count: Any) -> Optional[str]:
    number = _to_number(count)
    if number is None:
        return None
    for limit, label in EMPLOYEE_BUCKETS:
        if number <= limit:
            return label
    return "1000+"


def revenue_bucket(amount: Any) -> Optional[str]:
    number = _to_number(amount)
    if number is None:
        return None
    for limit, label in REVENUE_BUCKETS:
        if number <= limit:
            return label
    return "$1B+"


class FieldMapper:
    """
    Maps source fields to target fields.

    Args:
        field_mappings: target_field -> source_path, e.g.
            {"name": "company.name", "phone": "phones[0].number"}
    """

    def __init__(self, field_mappings: Dict[str, str]):
        self.field_mappings = field_mappings or {}

    def map(self, item: Dict[str, Any]) -> Dict[str, Any]:
        mapped = {}
        for target, source_path in self.field_mappings.items():
            value = extract_value(item, source_path)
            if value is not None:
                mapped[target] = value
        return mapped

    def map_many(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        results = []
        for item in items:
            if not isinstance(item, dict):
                logger.debug(f"Skipping non-object item: {type(item).__name__}")
                continue
            results.append(self.map(item))
        return results
