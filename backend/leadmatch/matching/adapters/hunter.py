"""Hunter.io domain search adapter."""
from typing import Any, Dict, List
import logging

import httpx

from leadmatch.exceptions import ProviderError
from leadmatch.matching.core.field_mapper import employee_bucket
from leadmatch.schemas.preference import PreferenceConfig
from .base import CandidateLead, SourceAdapter

logger = logging.getLogger(__name__)

MAX_CITIES = 5
MAX_INDUSTRIES = 3


class HunterAdapter(SourceAdapter):
    """Email-finder search run once per (city, industry) combination."""

    name = "hunter"
    timeout = 15.0

    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        items = []
        failures = []
        url = f"{self.endpoint(config)}/domain-search"
        pairs = [
            (city, industry)
            for city in config.geographic.cities[:MAX_CITIES]
            for industry in config.business.industries[:MAX_INDUSTRIES]
        ]
        for city, industry in pairs:
            try:
                payload = await self.get_json(
                    client,
                    url,
                    params={
                        "api_key": self.api_key(config),
                        "limit": 10,
                        "offset": 0,
                        "location": city,
                        "industry": industry,
                    },
                )
            except ProviderError as e:
                logger.warning(f"⚠️ Hunter search skipped for {city}/{industry}: {e.message}")
                failures.append(e)
                continue
            if isinstance(payload, dict) and isinstance(payload.get("data"), list):
                items.extend(payload["data"])

        # A failed pair is skipped like a failed Clearbit domain; all pairs failing is a provider failure
        if pairs and len(failures) == len(pairs):
            raise failures[-1]
        return items

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        return CandidateLead(
            source="Hunter.io",
            source_id=str(item["id"]) if item.get("id") is not None else None,
            name=item.get("name") or "Unknown Company",
            website=item.get("domain") or "",
            email=item.get("email") or "",
            phone=item.get("phone") or "",
            industry=item.get("industry"),
            city=item.get("location"),
            state=item.get("state"),
            country=item.get("country"),
            employee_range=employee_bucket(item.get("employees")),
            description=item.get("description") or "",
            founded=str(item["founded"]) if item.get("founded") else "",
            notes=f"Imported from Hunter.io. Email confidence: {item.get('confidence') or 'N/A'}",
        )

    def test_request(self, endpoint: str, api_key: str) -> Dict[str, Any]:
        return {"url": f"{endpoint}/account", "params": {"api_key": api_key}, "headers": {}}
