"""
Adapter factory and registry.
"""
from typing import Optional

import httpx

from leadmatch.matching.core.rate_limiter import RateLimiter
from .base import CandidateLead, SourceAdapter
from .crunchbase import CrunchbaseAdapter
from .hunter import HunterAdapter
from .clearbit import ClearbitAdapter
from .linkedin import LinkedInAdapter
from .demo import JsonPlaceholderAdapter, RandomUserAdapter, DummyJsonAdapter

# Registry of available adapters; provider order is the sync order
ADAPTER_REGISTRY = {
    "crunchbase": CrunchbaseAdapter,
    "hunter": HunterAdapter,
    "clearbit": ClearbitAdapter,
    "linkedin": LinkedInAdapter,
    "jsonplaceholder": JsonPlaceholderAdapter,
    "randomuser": RandomUserAdapter,
    "dummyjson": DummyJsonAdapter,
}

DEMO_SOURCES = ("jsonplaceholder", "randomuser", "dummyjson")


def get_adapter(
    name: str,
    rate_limiter: Optional[RateLimiter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SourceAdapter:
    """
    Factory function to create the adapter for a provider.

    Raises:
        ValueError: unknown provider name
    """
    adapter_class = ADAPTER_REGISTRY.get(name)

    if not adapter_class:
        raise ValueError(
            f"Unknown source: {name}. "
            f"Available: {list(ADAPTER_REGISTRY.keys())}"
        )

    return adapter_class(rate_limiter=rate_limiter, transport=transport)


__all__ = [
    "ADAPTER_REGISTRY",
    "DEMO_SOURCES",
    "CandidateLead",
    "SourceAdapter",
    "get_adapter",
]
