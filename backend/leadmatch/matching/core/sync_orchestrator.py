"""
Sync orchestrator - fans one user's sync out to every configured provider.

Pipeline: fetch (per provider, sequential) → merge → dedupe → filter → report
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

import httpx

from leadmatch.config import settings
from leadmatch.matching.adapters import CandidateLead, get_adapter
from leadmatch.matching.core.deduplicator import Deduplicator
from leadmatch.matching.core.rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    total_leads: int = 0
    qualified_leads: int = 0
    api_calls: int = 0
    success_rate: float = 0
    leads: List[CandidateLead] = field(default_factory=list)
    failed_providers: List[str] = field(default_factory=list)
    skipped_providers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_leads": self.total_leads,
            "qualified_leads": self.qualified_leads,
            "api_calls": self.api_calls,
            "success_rate": self.success_rate,
            "leads": [lead.to_dict() for lead in self.leads],
            "failed_providers": list(self.failed_providers),
            "skipped_providers": list(self.skipped_providers),
        }


class SyncOrchestrator:
    """
    Runs one user's provider sync.

    Providers are called one after another so rate-limit accounting stays
    per call. One provider failing never empties the others' results.
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout_seconds: Optional[float] = None,
        adapters: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            rate_limiter: Shared limiter; one per process
            transport: httpx transport handed to every adapter
            timeout_seconds: Overall deadline for one user's sync
            adapters: Explicit provider name -> adapter overrides
        """
        self.rate_limiter = rate_limiter or RateLimiter()
        self.transport = transport
        self.timeout_seconds = timeout_seconds or settings.SYNC_TIMEOUT_SECONDS
        self.adapters = adapters or {}
        self.deduplicator = Deduplicator()

    def adapter_for(self, provider: str):
        if provider not in self.adapters:
            self.adapters[provider] = get_adapter(provider, self.rate_limiter, self.transport)
        return self.adapters[provider]

    async def sync_leads_for_user(self, preference: Any) -> SyncReport:
        """
        Fetch candidates from every provider with a configured key.

        Args:
            preference: UserPreference row (needs `user_id` and `config`)

        Returns:
            SyncReport with the filtered, deduplicated candidates
        """
        config = preference.config
        user_id = preference.user_id
        thresholds = config.scoring.thresholds
        report = SyncReport()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds
        collected: List[CandidateLead] = []

        for provider in config.api.keys.configured():
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"⏱️ Sync deadline reached for user {user_id}, skipping {provider}")
                report.skipped_providers.append(provider)
                continue

            report.api_calls += 1
            try:
                candidates = await asyncio.wait_for(
                    self.adapter_for(provider).fetch_candidates(preference),
                    timeout=remaining,
                )
            except asyncio.TimeoutError:
                logger.error(f"❌ {provider} timed out for user {user_id}")
                report.failed_providers.append(provider)
                continue
            except Exception as e:
                logger.error(f"❌ {provider} failed for user {user_id}: {e}")
                report.failed_providers.append(provider)
                continue

            collected.extend(candidates)

        unique = self.deduplicator.deduplicate(collected)
        filtered = [lead for lead in unique if lead.score >= thresholds.minimum]

        report.leads = filtered
        report.total_leads = len(filtered)
        report.qualified_leads = sum(1 for lead in filtered if lead.score >= thresholds.high)
        if report.api_calls:
            succeeded = report.api_calls - len(report.failed_providers)
            report.success_rate = round(succeeded / report.api_calls * 100, 2)

        logger.info(
            f"🔄 Sync for user {user_id}: {report.total_leads} leads "
            f"({report.qualified_leads} qualified) from {report.api_calls} providers"
        )
        return report
