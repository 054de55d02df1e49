# tests/services/test_notifications.py

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from leadmatch.schemas.settings import GlobalSettings, NotificationChannelSettings, NotificationConfig
from leadmatch.services.notifications import NotificationEmitter
from leadmatch.services.settings_store import SettingsStore


def webhook(config_id, triggers, enabled=True, method="POST"):
    return NotificationConfig(
        id=config_id,
        name=f"Webhook {config_id}",
        type="webhook",
        enabled=enabled,
        triggers=triggers,
        settings=NotificationChannelSettings(webhook=f"https://hooks.example.com/{config_id}", method=method),
    )


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def transport(requests_seen):
    def handler(request):
        requests_seen.append(request)
        return httpx.Response(200, json={"ok": True})
    return httpx.MockTransport(handler)


class TestNotificationEmitter:

    @pytest.mark.asyncio
    async def test_webhooks_subscribed_to_trigger(self, db, session_factory, transport, requests_seen):
        await SettingsStore(db).save_global_settings(GlobalSettings(notifications=[
            webhook("leads", ["new_leads"]),
            webhook("errors", ["api_errors"]),
            webhook("off", ["new_leads"], enabled=False),
            webhook("ping", ["new_leads"], method="GET"),
        ]))
        push = AsyncMock()
        emitter = NotificationEmitter(session_factory=session_factory, push=push, transport=transport)

        await emitter.emit("new_leads", {"leads_count": 3})

        push.assert_awaited_once_with("new_leads", {"leads_count": 3}, user_id=None)
        assert [str(r.url) for r in requests_seen] == [
            "https://hooks.example.com/leads",
            "https://hooks.example.com/ping?trigger=new_leads",
        ]
        assert json.loads(requests_seen[0].content) == {"trigger": "new_leads", "data": {"leads_count": 3}}

    @pytest.mark.asyncio
    async def test_failures_are_not_raised(self, db, session_factory):
        await SettingsStore(db).save_global_settings(GlobalSettings(notifications=[webhook("leads", ["new_leads"])]))
        push = AsyncMock(side_effect=RuntimeError("socket closed"))
        failing = httpx.MockTransport(lambda request: httpx.Response(500))
        emitter = NotificationEmitter(session_factory=session_factory, push=push, transport=failing)

        await emitter.emit("new_leads", {"leads_count": 1}, user_id="user-1")

        push.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_log_only_channels(self, session_factory, transport, requests_seen):
        emitter = NotificationEmitter(session_factory=session_factory, push=AsyncMock(), transport=transport)

        # Defaults: browser configs only
        await emitter.emit("new_leads", {"leads_count": 1})

        assert requests_seen == []
