"""Crunchbase organization search adapter."""
from typing import Any, Dict, List

import httpx

from leadmatch.matching.core.field_mapper import employee_bucket, extract_value, revenue_bucket
from leadmatch.schemas.preference import PreferenceConfig
from .base import CandidateLead, SourceAdapter

FIELD_IDS = (
    "identifier,short_description,name,website,location_identifiers,"
    "founded_on,total_funding,employee_count,num_funding_rounds"
)


class CrunchbaseAdapter(SourceAdapter):
    """Funding-database search filtered by target cities and industries."""

    name = "crunchbase"
    timeout = 30.0

    def build_params(self, config: PreferenceConfig) -> Dict[str, Any]:
        params = {"field_ids": FIELD_IDS, "limit": 50}
        if config.geographic.cities:
            params["location_identifiers"] = ",".join(config.geographic.cities)
        if config.business.industries:
            params["facet_ids"] = ",".join(config.business.industries)
        return params

    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        payload = await self.get_json(
            client,
            f"{self.endpoint(config)}/entities/organizations",
            params=self.build_params(config),
            headers={"X-CB-User-Key": self.api_key(config)},
        )
        return self.records(payload, "entities")

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        properties = item.get("properties") or {}
        locations = {
            location.get("location_type"): location.get("value")
            for location in properties.get("location_identifiers") or []
            if isinstance(location, dict)
        }
        founded_on = properties.get("founded_on") or ""
        funding = properties.get("total_funding_usd") or item.get("total_funding_usd")

        return CandidateLead(
            source="Crunchbase",
            source_id=extract_value(properties, "identifier.uuid"),
            name=properties.get("name") or "Unknown Company",
            website=properties.get("website") or "",
            industry=extract_value(item, "category.group.name"),
            city=locations.get("city"),
            state=locations.get("region"),
            country=locations.get("country"),
            employee_range=employee_bucket(properties.get("employee_count") or item.get("employee_count")),
            revenue_range=revenue_bucket(funding),
            description=properties.get("short_description") or "",
            founded=str(founded_on).split("-")[0] if founded_on else "",
            notes=f"Imported from Crunchbase. Total funding: ${(funding or 0) / 1_000_000:.2f}M",
        )

    def test_request(self, endpoint: str, api_key: str) -> Dict[str, Any]:
        return {
            "url": f"{endpoint}/entities/organizations",
            "params": {},
            "headers": {"X-CB-User-Key": api_key},
        }
