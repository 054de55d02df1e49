"""
Notification emitter.

Fire-and-forget: a trigger is pushed on the Socket.IO channel, then handed
to every enabled notification config subscribed to it. Delivery errors are
logged and never raised to the caller.
"""
from typing import Any, Awaitable, Callable, Dict, Optional
import logging

import httpx

from leadmatch.database import AsyncSessionLocal
from leadmatch.schemas.settings import NotificationConfig
from leadmatch.services.settings_store import SettingsStore
from leadmatch.websocket import push_notification

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Dispatches trigger events to the enabled channels"""

    def __init__(
        self,
        session_factory=AsyncSessionLocal,
        push: Callable[..., Awaitable[None]] = push_notification,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session_factory = session_factory
        self.push = push
        self.transport = transport

    async def emit(self, trigger: str, payload: Dict[str, Any], user_id: Optional[str] = None):
        try:
            await self.push(trigger, payload, user_id=user_id)
        except Exception as e:
            logger.error(f"❌ Socket push failed for {trigger}: {e}")

        try:
            async with self.session_factory() as db:
                configs = await SettingsStore(db).get_enabled_notifications(trigger)
        except Exception as e:
            logger.error(f"❌ Could not load notification configs for {trigger}: {e}")
            return

        for config in configs:
            try:
                await self.dispatch(config, trigger, payload)
            except Exception as e:
                logger.error(f"❌ Notification {config.id} failed for {trigger}: {e}")

    async def dispatch(self, config: NotificationConfig, trigger: str, payload: Dict[str, Any]):
        if config.type == "webhook":
            await self._send_webhook(config, trigger, payload)
        elif config.type == "email":
            # Delivery stubbed; only the intent is recorded
            logger.info(f"📧 Email notification ({config.settings.email}): {trigger}")
        elif config.type == "sms":
            logger.info(f"📱 SMS notification ({config.settings.phone}): {trigger}")
        else:
            logger.info(f"🔔 Browser notification '{config.settings.title}': {trigger}")

    async def _send_webhook(self, config: NotificationConfig, trigger: str, payload: Dict[str, Any]):
        url = config.settings.webhook
        if not url:
            logger.warning(f"⚠️ Webhook notification {config.id} has no URL")
            return

        body = {"trigger": trigger, "data": payload}
        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            if config.settings.method == "GET":
                response = await client.get(url, params={"trigger": trigger}, headers=config.settings.headers)
            else:
                response = await client.post(url, json=body, headers=config.settings.headers)
            response.raise_for_status()

        logger.info(f"🔗 Webhook notification sent to {url}: {trigger}")
