"""LinkedIn organization search adapter."""
from typing import Any, Dict, List

import httpx

from leadmatch.matching.core.field_mapper import employee_bucket, extract_value
from leadmatch.schemas.preference import PreferenceConfig
from .base import CandidateLead, SourceAdapter


class LinkedInAdapter(SourceAdapter):
    """Professional-network organization search by industry and city keywords."""

    name = "linkedin"
    timeout = 20.0

    def build_params(self, config: PreferenceConfig) -> Dict[str, Any]:
        params = {"q": "search", "count": 25}
        keywords = config.business.industries + config.triggers.keywords
        if keywords:
            params["keywords"] = " ".join(keywords)
        if config.geographic.cities:
            params["locations"] = ",".join(config.geographic.cities)
        return params

    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        payload = await self.get_json(
            client,
            f"{self.endpoint(config)}/organizations",
            params=self.build_params(config),
            headers={
                "Authorization": f"Bearer {self.api_key(config)}",
                "X-Restli-Protocol-Version": "2.0.0",
            },
        )
        return self.records(payload, "elements")

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        return CandidateLead(
            source="LinkedIn",
            source_id=str(item["id"]) if item.get("id") is not None else None,
            name=item.get("localizedName") or item.get("name") or "Unknown Company",
            website=item.get("localizedWebsite") or item.get("website") or "",
            industry=extract_value(item, "industries[0]"),
            city=extract_value(item, "locations[0].address.city"),
            state=extract_value(item, "locations[0].address.geographicArea"),
            country=extract_value(item, "locations[0].address.country"),
            employee_range=employee_bucket(extract_value(item, "staffCountRange.start")),
            technologies=list(item.get("specialties") or []),
            description=item.get("localizedDescription") or "",
            founded=str(extract_value(item, "foundedOn.year") or ""),
            notes="Imported from LinkedIn.",
        )

    def test_request(self, endpoint: str, api_key: str) -> Dict[str, Any]:
        return {
            "url": f"{endpoint}/me",
            "params": {},
            "headers": {"Authorization": f"Bearer {api_key}"},
        }
