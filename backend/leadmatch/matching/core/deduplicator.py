"""
Deduplicator for merged candidate lists.

Candidates from different providers are considered the same lead when they
share the (name, website) pair. The first occurrence wins.
"""
from typing import Any, Iterable, List, Tuple
import logging

logger = logging.getLogger(__name__)


class Deduplicator:
    """Drop repeated candidates by (name, website), keeping order."""

    @staticmethod
    def key(candidate: Any) -> Tuple[Any, Any]:
        if isinstance(candidate, dict):
            return candidate.get("name"), candidate.get("website")
        return getattr(candidate, "name", None), getattr(candidate, "website", None)

    def deduplicate(self, candidates: Iterable[Any]) -> List[Any]:
        seen = set()
        unique = []
        for candidate in candidates:
            key = self.key(candidate)
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate)

        logger.debug(f"Deduplicated candidates: {len(unique)} unique")
        return unique
