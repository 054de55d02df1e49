# tests/services/test_api_import.py
"""
Tests for settings-driven API imports and demo-source imports
"""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
import pytest_asyncio

from leadmatch.exceptions import NotFoundError, ProviderError, ValidationError
from leadmatch.schemas.settings import ApiConfig, GlobalSettings, ScheduleConfig
from leadmatch.services.api_import import ApiImportService, process_api_response
from leadmatch.services.lead_store import LeadStore
from leadmatch.services.preference_store import PreferenceStore
from leadmatch.services.settings_store import SettingsStore


COMPANIES = {
    "data": [
        {"company": {"name": "Acme Labs", "industry": "Technology"}, "contact": {"email": "hi@acme.io"}},
        {"company": {"name": "Bolt Pay", "industry": "Fintech"}, "contact": {"email": "team@bolt.io"}},
        {"company": {"industry": "Retail"}},
    ]
}

FIELD_MAPPING = {"name": "company.name", "industry": "company.industry", "email": "contact.email"}

PLACEHOLDER_USERS = [
    {"id": 1, "name": "Leanne Graham", "email": "leanne@april.biz", "phone": "1-770",
     "website": "hildegard.org", "address": {"city": "Gwenborough"}, "company": {"name": "Romaguera"}},
    {"id": 2, "name": "Ervin Howell", "email": "ervin@melissa.tv", "phone": "010-692",
     "website": "anastasia.net", "address": {"city": "Bangalore"}, "company": {"name": "Deckow"}},
]


def json_transport(payload, status_code=200):
    return httpx.MockTransport(lambda request: httpx.Response(status_code, json=payload))


@pytest.fixture
def emitter():
    emitter = Mock()
    emitter.emit = AsyncMock()
    return emitter


@pytest.fixture
def api_config():
    return ApiConfig(
        id="api-1",
        name="Company Directory",
        url="https://directory.example.com/companies",
        field_mapping=FIELD_MAPPING,
        enabled=True,
    )


@pytest_asyncio.fixture
async def seeded_settings(db, api_config):
    return await SettingsStore(db).save_global_settings(
        GlobalSettings(apis=[api_config], schedule=ScheduleConfig(max_leads_per_run=1))
    )


# ============================================================================
# TEST: Response mapping
# ============================================================================

class TestProcessApiResponse:

    def test_maps_records_and_drops_unnamed(self):
        leads = process_api_response(COMPANIES, FIELD_MAPPING)

        assert [lead["name"] for lead in leads] == ["Acme Labs", "Bolt Pay"]
        assert leads[0]["email"] == "hi@acme.io"
        assert leads[0]["status"] == "New"
        assert leads[0]["priority"] == "Medium"
        assert leads[0]["original_data"] == COMPANIES["data"][0]

    def test_single_object_response(self):
        leads = process_api_response({"company": {"name": "Solo"}}, FIELD_MAPPING)

        assert [lead["name"] for lead in leads] == ["Solo"]

    def test_scalar_response(self):
        assert process_api_response("ok", FIELD_MAPPING) == []


# ============================================================================
# TEST: execute_api_call
# ============================================================================

class TestExecuteApiCall:

    @pytest.mark.asyncio
    async def test_success(self, db, emitter, api_config, seeded_settings):
        service = ApiImportService(db, emitter=emitter, transport=json_transport(COMPANIES))

        saved = await service.execute_api_call(api_config)

        assert [lead.name for lead in saved] == ["Acme Labs", "Bolt Pay"]
        assert all(lead.source == "Company Directory" for lead in saved)
        assert saved[0].notes == "Imported from Company Directory API"
        assert saved[0].custom_fields["original_data"]["company"]["name"] == "Acme Labs"

        stored = (await SettingsStore(db).get_global_settings()).get_api("api-1")
        assert stored.status == "success"
        assert stored.last_run is not None

        emitter.emit.assert_awaited_once()
        trigger, payload = emitter.emit.await_args.args
        assert trigger == "new_leads"
        assert payload["leads_count"] == 2

    @pytest.mark.asyncio
    async def test_max_leads(self, db, api_config, seeded_settings):
        service = ApiImportService(db, transport=json_transport(COMPANIES))

        saved = await service.execute_api_call(api_config, max_leads=1)

        assert len(saved) == 1

    @pytest.mark.asyncio
    async def test_http_error_marks_api_failed(self, db, emitter, api_config, seeded_settings):
        service = ApiImportService(db, emitter=emitter, transport=json_transport({"error": "down"}, 503))

        with pytest.raises(ProviderError):
            await service.execute_api_call(api_config)

        stored = (await SettingsStore(db).get_global_settings()).get_api("api-1")
        assert stored.status == "error"
        trigger, payload = emitter.emit.await_args.args
        assert trigger == "api_errors"
        assert payload["api_name"] == "Company Directory"
        assert await LeadStore(db).find() == []

    @pytest.mark.asyncio
    async def test_network_error(self, db, api_config, seeded_settings):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = ApiImportService(db, transport=httpx.MockTransport(refuse))

        with pytest.raises(ProviderError):
            await service.execute_api_call(api_config)

        stored = (await SettingsStore(db).get_global_settings()).get_api("api-1")
        assert stored.status == "error"

    @pytest.mark.asyncio
    async def test_trigger_uses_run_cap(self, db, seeded_settings):
        service = ApiImportService(db, transport=json_transport(COMPANIES))

        result = await service.trigger_api_execution("api-1")

        assert result["api_id"] == "api-1"
        assert result["leads_imported"] == 1

    @pytest.mark.asyncio
    async def test_trigger_unknown_api(self, db, seeded_settings):
        with pytest.raises(NotFoundError):
            await ApiImportService(db).trigger_api_execution("missing")

    @pytest.mark.asyncio
    async def test_invalid_url_marks_api_failed(self, db, emitter, seeded_settings):
        api_config = ApiConfig(id="api-1", name="Company Directory", url="http://example.com:abc/leads",
                               field_mapping=FIELD_MAPPING)
        service = ApiImportService(db, emitter=emitter)

        with pytest.raises(ProviderError) as exc:
            await service.execute_api_call(api_config)

        assert "InvalidURL" in exc.value.message
        stored = (await SettingsStore(db).get_global_settings()).get_api("api-1")
        assert stored.status == "error"
        trigger, payload = emitter.emit.await_args.args
        assert trigger == "api_errors"
        assert "InvalidURL" in payload["error"]

    @pytest.mark.asyncio
    async def test_storage_failure_marks_api_failed(self, db, emitter, api_config, seeded_settings):
        service = ApiImportService(db, emitter=emitter, transport=json_transport(COMPANIES))

        with patch.object(service.lead_store, "save", AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(ProviderError):
                await service.execute_api_call(api_config)

        stored = (await SettingsStore(db).get_global_settings()).get_api("api-1")
        assert stored.status == "error"
        trigger, payload = emitter.emit.await_args.args
        assert trigger == "api_errors"
        assert payload["error"] == "RuntimeError: disk full"


# ============================================================================
# TEST: Demo imports
# ============================================================================

class TestDemoImport:

    @pytest.mark.asyncio
    async def test_import_skips_known_emails(self, db):
        service = ApiImportService(db, transport=json_transport(PLACEHOLDER_USERS))

        first = await service.import_demo_leads("jsonplaceholder")
        second = await service.import_demo_leads("jsonplaceholder")

        assert first == {"success": True, "source": "jsonplaceholder", "leads_fetched": 2, "leads_saved": 2}
        assert second["leads_saved"] == 0
        leads = await LeadStore(db).find(source="jsonplaceholder")
        assert {lead.email for lead in leads} == {"leanne@april.biz", "ervin@melissa.tv"}
        leanne = next(lead for lead in leads if lead.email == "leanne@april.biz")
        assert leanne.custom_fields["source_id"] == "1"

    @pytest.mark.asyncio
    async def test_import_scores_against_user_preference(self, db, preference_doc):
        await PreferenceStore(db).upsert_preference("user-1", preference_doc)
        service = ApiImportService(db, transport=json_transport(PLACEHOLDER_USERS))

        await service.import_demo_leads("jsonplaceholder", user_id="user-1")

        lead = (await LeadStore(db).find(email="ervin@melissa.tv"))[0]
        assert lead.score == 15
        assert lead.priority == "Low"

    @pytest.mark.asyncio
    async def test_unknown_source(self, db):
        with pytest.raises(ValidationError):
            await ApiImportService(db).import_demo_leads("myspace")

    @pytest.mark.asyncio
    async def test_malformed_response_is_provider_error(self, db):
        service = ApiImportService(db, transport=json_transport([1, 2]))

        with pytest.raises(ProviderError):
            await service.import_demo_leads("dummyjson")

        assert await LeadStore(db).find() == []

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, db):
        users = [{**PLACEHOLDER_USERS[0], "address": "Gwenborough"}, PLACEHOLDER_USERS[1]]
        service = ApiImportService(db, transport=json_transport(users))

        result = await service.import_demo_leads("jsonplaceholder")

        assert result["leads_fetched"] == 1
        assert [lead.email for lead in await LeadStore(db).find()] == ["ervin@melissa.tv"]
