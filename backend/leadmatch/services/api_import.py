"""
Settings-driven API import.

Admin-defined API configs are called, their responses mapped through the
config's field mapping, and the resulting records saved as leads. Demo sources
are imported the same way without any admin config.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.exceptions import LeadMatchError, NotFoundError, ProviderError, ValidationError
from leadmatch.matching.adapters import DEMO_SOURCES, get_adapter
from leadmatch.matching.core.field_mapper import FieldMapper, unwrap_items
from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.models import Lead
from leadmatch.schemas.settings import ApiConfig
from leadmatch.services.lead_store import LeadStore
from leadmatch.services.preference_store import PreferenceStore
from leadmatch.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

API_TIMEOUT_SECONDS = 30.0


def process_api_response(payload: Any, field_mapping: Dict[str, str]) -> List[Dict[str, Any]]:
    """Map every record in the response; records without a name are dropped."""
    mapper = FieldMapper(field_mapping)
    leads = []
    for item in unwrap_items(payload):
        if not isinstance(item, dict):
            continue
        lead_data = mapper.map(item)
        if not lead_data.get("name"):
            continue
        lead_data.setdefault("status", "New")
        lead_data.setdefault("priority", "Medium")
        lead_data["original_data"] = item
        leads.append(lead_data)
    return leads


class ApiImportService:
    """Executes admin API configs and demo-source imports"""

    def __init__(
        self,
        db: AsyncSession,
        emitter=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.db = db
        self.emitter = emitter
        self.transport = transport
        self.rate_limiter = rate_limiter or RateLimiter()
        self.settings_store = SettingsStore(db)
        self.lead_store = LeadStore(db)

    async def _emit(self, trigger: str, payload: Dict[str, Any]):
        if self.emitter is not None:
            await self.emitter.emit(trigger, payload)

    async def _request(self, api_config: ApiConfig) -> Any:
        async with httpx.AsyncClient(timeout=API_TIMEOUT_SECONDS, transport=self.transport) as client:
            response = await client.request(
                api_config.method,
                api_config.url,
                params=api_config.params or None,
                headers=api_config.headers or None,
            )
            if response.is_error:
                raise ProviderError(
                    api_config.name,
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    response.status_code,
                )
            try:
                return response.json()
            except ValueError as e:
                raise ProviderError(api_config.name, "response is not valid JSON") from e

    async def _save_leads(self, leads: List[Dict[str, Any]], api_config: ApiConfig) -> List[Lead]:
        saved = []
        for lead_data in leads:
            try:
                lead = await self.lead_store.save({
                    **lead_data,
                    "source": api_config.name,
                    "notes": f"Imported from {api_config.name} API",
                })
                saved.append(lead)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"❌ Error saving lead from {api_config.name}: {e}")
        return saved

    async def _record_failure(self, api_config: ApiConfig, message: str):
        logger.error(f"❌ API execution failed for {api_config.name}: {message}")
        try:
            await self.db.rollback()
            await self.settings_store.mark_api_status(api_config.id, "error", datetime.now(timezone.utc))
        except (SQLAlchemyError, NotFoundError) as e:
            logger.error(f"❌ Could not record error status for {api_config.name}: {e}")
        await self._emit("api_errors", {
            "api_name": api_config.name,
            "error": message,
            "message": f"API execution failed: {api_config.name}",
        })

    async def execute_api_call(self, api_config: ApiConfig, max_leads: Optional[int] = None) -> List[Lead]:
        """
        Run one admin API config end to end.

        Status goes pending → success, or pending → error when anything after
        the pending mark fails (request, response, mapping or storage).

        Raises:
            ProviderError: the call failed (after the error status is recorded)
        """
        logger.info(f"🌐 Executing API call: {api_config.name}")
        await self.settings_store.mark_api_status(api_config.id, "pending", datetime.now(timezone.utc))

        try:
            payload = await self._request(api_config)
            leads = process_api_response(payload, api_config.field_mapping)
            if max_leads:
                leads = leads[:max_leads]
            saved = await self._save_leads(leads, api_config)
            await self.settings_store.mark_api_status(api_config.id, "success", datetime.now(timezone.utc))
        except Exception as e:
            message = e.message if isinstance(e, LeadMatchError) else f"{type(e).__name__}: {e}"
            await self._record_failure(api_config, message)
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(api_config.name, message) from e

        if saved:
            await self._emit("new_leads", {
                "api_name": api_config.name,
                "leads_count": len(saved),
                "message": f"{len(saved)} new leads imported from {api_config.name}",
            })

        logger.info(f"✅ {api_config.name}: imported {len(saved)} leads")
        return saved

    async def trigger_api_execution(self, api_id: str) -> Dict[str, Any]:
        """Run one API config on demand."""
        global_settings = await self.settings_store.get_global_settings()
        api_config = global_settings.get_api(api_id)
        if api_config is None:
            raise NotFoundError("API config", api_id)

        saved = await self.execute_api_call(api_config, max_leads=global_settings.schedule.max_leads_per_run)
        return {
            "api_id": api_id,
            "leads_imported": len(saved),
            "message": f"Successfully imported {len(saved)} leads",
        }

    async def import_demo_leads(self, source: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch a keyless demo source and save new leads.

        Leads already stored for the same (email, source) are skipped. When
        `user_id` has a preference, each lead is scored against it.
        """
        if source not in DEMO_SOURCES:
            raise ValidationError(f"Unsupported source: {source}", field="source", available=list(DEMO_SOURCES))

        preference = await PreferenceStore(self.db).get_preference(user_id) if user_id else None
        adapter = get_adapter(source, self.rate_limiter, self.transport)
        target = preference if preference is not None else {}

        candidates = await adapter.fetch_candidates(target)

        saved = []
        for candidate in candidates:
            if candidate.email and await self.lead_store.find_by_email_and_source(candidate.email, source):
                continue
            data = candidate.to_dict()
            if preference is None:
                data.pop("score")
                data["priority"] = "Medium"
            lead = await self.lead_store.save(data)
            saved.append(lead)

        logger.info(f"📥 {source}: fetched {len(candidates)}, saved {len(saved)} new leads")
        return {
            "success": True,
            "source": source,
            "leads_fetched": len(candidates),
            "leads_saved": len(saved),
        }
