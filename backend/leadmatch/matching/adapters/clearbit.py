"""Clearbit company lookup adapter."""
from typing import Any, Dict, List
import logging

import httpx

from leadmatch.exceptions import ProviderError
from leadmatch.matching.core.field_mapper import employee_bucket, extract_value, revenue_bucket
from leadmatch.schemas.preference import PreferenceConfig
from .base import CandidateLead, SourceAdapter

logger = logging.getLogger(__name__)

DOMAIN_PREFIXES = ("tech", "digital", "smart")
DOMAIN_EXTENSIONS = (".com", ".io")
MAX_DOMAINS = 20


def generate_company_domains(config: PreferenceConfig) -> List[str]:
    """Guess candidate company domains from the first five target cities."""
    domains = []
    for city in config.geographic.cities[:5]:
        slug = "".join(city.lower().split())
        for prefix in DOMAIN_PREFIXES:
            for extension in DOMAIN_EXTENSIONS:
                domains.append(f"{prefix}{slug}{extension}")
    return domains


class ClearbitAdapter(SourceAdapter):
    """Firmographic lookup over generated domains; failed lookups are skipped."""

    name = "clearbit"
    timeout = 10.0

    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        items = []
        url = f"{self.endpoint(config)}/companies/lookup"
        headers = {"Authorization": f"Bearer {self.api_key(config)}"}
        for domain in generate_company_domains(config)[:MAX_DOMAINS]:
            try:
                payload = await self.get_json(client, url, params={"domain": domain}, headers=headers)
            except ProviderError as e:
                logger.debug(f"Clearbit lookup skipped for {domain}: {e.message}")
                continue
            if isinstance(payload, dict) and payload:
                items.append(payload)
        return items

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        technologies = item.get("tech") or []
        return CandidateLead(
            source="Clearbit",
            source_id=item.get("id"),
            name=item.get("name") or "Unknown Company",
            website=item.get("domain") or "",
            industry=extract_value(item, "category.industry"),
            city=extract_value(item, "geo.city") or item.get("location"),
            state=extract_value(item, "geo.state"),
            country=extract_value(item, "geo.country"),
            employee_range=employee_bucket(extract_value(item, "metrics.employees")),
            revenue_range=revenue_bucket(extract_value(item, "metrics.annualRevenue")),
            technologies=list(technologies),
            description=item.get("description") or "",
            founded=str(item["foundedYear"]) if item.get("foundedYear") else "",
            notes=f"Imported from Clearbit. Technologies: {', '.join(technologies) or 'N/A'}",
        )

    def test_request(self, endpoint: str, api_key: str) -> Dict[str, Any]:
        return {
            "url": f"{endpoint}/companies/lookup",
            "params": {"domain": "clearbit.com"},
            "headers": {"Authorization": f"Bearer {api_key}"},
        }
