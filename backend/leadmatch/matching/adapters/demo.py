"""
Keyless demo sources.

Public sample-user APIs used to populate the lead store without provider
credentials. Each returns people rather than companies.
"""
from typing import Any, Dict, List

import httpx

from leadmatch.matching.core.field_mapper import unwrap_items
from leadmatch.schemas.preference import PreferenceConfig
from .base import CandidateLead, SourceAdapter


class DemoAdapter(SourceAdapter):
    requires_key = False
    timeout = 10.0
    url: str = ""

    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        payload = await self.get_json(client, self.url)
        return self.items(payload)

    def items(self, payload: Any) -> List[Dict[str, Any]]:
        return unwrap_items(payload)


class JsonPlaceholderAdapter(DemoAdapter):
    name = "jsonplaceholder"
    url = "https://jsonplaceholder.typicode.com/users"

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        return CandidateLead(
            source=self.name,
            source_id=str(item.get("id")),
            name=item.get("name"),
            email=item.get("email"),
            phone=item.get("phone"),
            website=item.get("website"),
            city=(item.get("address") or {}).get("city"),
            description=(item.get("company") or {}).get("name") or "Unknown Company",
        )


class RandomUserAdapter(DemoAdapter):
    name = "randomuser"
    url = "https://randomuser.me/api/?results=10"

    def items(self, payload: Any) -> List[Dict[str, Any]]:
        return self.records(payload, "results")

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        name = item.get("name") or {}
        location = item.get("location") or {}
        return CandidateLead(
            source=self.name,
            source_id=(item.get("login") or {}).get("uuid"),
            name=f"{name.get('first', '')} {name.get('last', '')}".strip(),
            email=item.get("email"),
            phone=item.get("phone"),
            city=location.get("city"),
            state=location.get("state"),
            country=location.get("country"),
            description="Random Company",
        )


class DummyJsonAdapter(DemoAdapter):
    name = "dummyjson"
    url = "https://dummyjson.com/users"

    def items(self, payload: Any) -> List[Dict[str, Any]]:
        return self.records(payload, "users")

    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        company = item.get("company") or {}
        address = item.get("address") or {}
        return CandidateLead(
            source=self.name,
            source_id=str(item.get("id")),
            name=f"{item.get('firstName', '')} {item.get('lastName', '')}".strip(),
            email=item.get("email"),
            phone=item.get("phone"),
            industry=company.get("department"),
            city=address.get("city"),
            state=address.get("state"),
            country=address.get("country"),
            description=company.get("name") or "Unknown Company",
        )
