"""
Base adapter interface for external lead sources.
All provider adapters implement this interface.
"""
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
import logging

import httpx

from leadmatch.exceptions import ProviderError, RateLimitExceeded
from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.matching.scoring import calculate_lead_score, priority_for_score
from leadmatch.schemas.preference import PreferenceConfig

logger = logging.getLogger(__name__)

USER_AGENT = "LeadGen-Pro/1.0"


@dataclass
class CandidateLead:
    """Canonical shape of one lead fetched from any provider."""
    source: str
    source_id: Optional[str] = None
    name: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    industry: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    employee_range: Optional[str] = None
    revenue_range: Optional[str] = None
    technologies: List[str] = field(default_factory=list)
    trigger_events: List[str] = field(default_factory=list)
    description: Optional[str] = None
    founded: Optional[str] = None
    notes: Optional[str] = None
    score: int = 0
    priority: str = "Low"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SourceAdapter(ABC):
    """
    Abstract base class for provider adapters.

    `fetch_candidates` raises on any failure; `fetch` is the safe wrapper that
    turns rate-limit and provider failures into an empty result.
    """

    name: str = ""
    timeout: float = 30.0
    requires_key: bool = True

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            rate_limiter: Shared per-(provider, user) limiter
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.rate_limiter = rate_limiter or RateLimiter()
        self.transport = transport

    # ========================================================================
    # HTTP
    # ========================================================================

    def client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self.transport,
            headers={"User-Agent": USER_AGENT},
        )

    async def get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET a JSON document; any failure is raised as ProviderError."""
        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.name, f"HTTP {e.response.status_code} from {url}", e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request to {url} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, f"invalid JSON from {url}") from e

    def records(self, payload: Any, key: str) -> List[Any]:
        """
        Read the record list under `key` of a JSON object response.

        Raises:
            ProviderError: the response root is not an object
        """
        if not isinstance(payload, dict):
            raise ProviderError(self.name, f"unexpected response shape: {type(payload).__name__}")
        items = payload.get(key)
        return items if isinstance(items, list) else []

    # ========================================================================
    # PROVIDER HOOKS
    # ========================================================================

    @abstractmethod
    async def fetch_raw(self, client: httpx.AsyncClient, config: PreferenceConfig) -> List[Dict[str, Any]]:
        """Call the provider and return its raw records."""
        pass

    @abstractmethod
    def normalize(self, item: Dict[str, Any]) -> CandidateLead:
        """Map one raw record onto the canonical candidate shape."""
        pass

    def api_key(self, config: PreferenceConfig) -> str:
        return getattr(config.api.keys, self.name, "") or ""

    def endpoint(self, config: PreferenceConfig) -> str:
        return (getattr(config.api.endpoints, self.name, "") or "").rstrip("/")

    # ========================================================================
    # FETCH
    # ========================================================================

    async def fetch_candidates(self, preference: Any) -> List[CandidateLead]:
        """
        Fetch, normalize and score candidates for one user.

        Raises:
            RateLimitExceeded: the (provider, user) budget is spent
            ProviderError: missing key, network, HTTP or parse failure
        """
        config = preference.config if hasattr(preference, "config") else PreferenceConfig.model_validate(preference)
        user_id = getattr(preference, "user_id", None) or "anonymous"

        if self.requires_key and not self.api_key(config):
            raise ProviderError(self.name, "API key not configured")

        self.rate_limiter.acquire(self.name, user_id, config.api.rate_limits)

        async with self.client() as client:
            raw_items = await self.fetch_raw(client, config)
        if not isinstance(raw_items, list):
            raise ProviderError(self.name, f"unexpected response shape: {type(raw_items).__name__}")

        candidates = []
        for item in raw_items:
            if not isinstance(item, dict):
                continue
            try:
                candidate = self.normalize(item)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                # Malformed records are skipped; the rest of the batch is kept
                logger.warning(f"⚠️ {self.name}: skipping malformed record: {e}")
                continue
            candidate.score = calculate_lead_score(config, candidate.to_dict())
            candidate.priority = priority_for_score(candidate.score)
            candidates.append(candidate)

        logger.info(f"✅ {self.name}: {len(candidates)} candidates for user {user_id}")
        return candidates

    async def fetch(self, preference: Any) -> List[CandidateLead]:
        """Like fetch_candidates, but a provider failure yields []."""
        try:
            return await self.fetch_candidates(preference)
        except RateLimitExceeded as e:
            logger.warning(f"⚠️ {e.message}")
            return []
        except ProviderError as e:
            logger.error(f"❌ Error fetching from {self.name}: {e.message}")
            return []

    # ========================================================================
    # CONNECTION TEST
    # ========================================================================

    def test_request(self, endpoint: str, api_key: str) -> Dict[str, Any]:
        """URL, params and headers used to probe the provider."""
        return {"url": endpoint, "params": {}, "headers": {}}

    async def test_connection(self, endpoint: Optional[str] = None, api_key: str = "") -> Dict[str, Any]:
        """
        Probe the provider with the given credentials.

        Returns:
            {"success": bool, "message": str, "data": {...}}
        """
        endpoint = (endpoint or getattr(PreferenceConfig().api.endpoints, self.name, "")).rstrip("/")
        request = self.test_request(endpoint, api_key)
        try:
            async with self.client(timeout=10.0) as client:
                response = await client.get(
                    request["url"], params=request["params"], headers=request["headers"]
                )
                response.raise_for_status()
            return {
                "success": True,
                "message": f"{self.name} API connection successful",
                "data": {
                    "status": response.status_code,
                    "response_time": response.headers.get("x-response-time", "N/A"),
                },
            }
        except httpx.HTTPStatusError as e:
            return {
                "success": False,
                "message": f"{self.name} API connection failed: HTTP {e.response.status_code}",
                "data": {"error": e.response.text},
            }
        except httpx.HTTPError as e:
            return {
                "success": False,
                "message": f"{self.name} API connection failed: {e}",
                "data": {"error": str(e)},
            }
