"""
Settings store - the global settings document.

The whole document (API configs, notification configs, schedule) lives in one
`system_settings` row at category `global`, key `global_settings`.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.exceptions import NotFoundError
from leadmatch.models import SystemSettings
from leadmatch.schemas.settings import ApiConfig, GlobalSettings, GlobalSettingsUpdate, NotificationConfig

logger = logging.getLogger(__name__)

GLOBAL_CATEGORY = "global"
GLOBAL_KEY = "global_settings"


class SettingsStore:
    """Read/write surface over the global settings document"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _row(self) -> Optional[SystemSettings]:
        result = await self.db.execute(
            select(SystemSettings).where(
                SystemSettings.category == GLOBAL_CATEGORY,
                SystemSettings.key == GLOBAL_KEY,
            )
        )
        return result.scalar_one_or_none()

    async def get_global_settings(self) -> GlobalSettings:
        """Return the settings document, creating the defaults on first read."""
        row = await self._row()
        if row is None:
            settings_doc = GlobalSettings()
            await self.save_global_settings(settings_doc)
            logger.info("⚙️ Created default global settings")
            return settings_doc
        return GlobalSettings.model_validate(row.value)

    async def save_global_settings(self, settings_doc: GlobalSettings) -> GlobalSettings:
        row = await self._row()
        value = settings_doc.model_dump(mode="json")
        if row is None:
            row = SystemSettings(
                category=GLOBAL_CATEGORY,
                key=GLOBAL_KEY,
                value=value,
                description="Global API, notification and schedule settings",
                updated_by=settings_doc.updated_by,
            )
            self.db.add(row)
        else:
            row.value = value
            row.updated_by = settings_doc.updated_by
        await self.db.commit()
        return settings_doc

    async def update_global_settings(self, update: GlobalSettingsUpdate) -> GlobalSettings:
        current = await self.get_global_settings()
        patch = update.model_dump(exclude_none=True)
        merged = GlobalSettings.model_validate({**current.model_dump(), **patch})
        return await self.save_global_settings(merged)

    async def update_api_config(self, api_id: str, patch: Dict[str, Any]) -> ApiConfig:
        """
        Apply `patch` to one API config and persist it.

        Raises:
            NotFoundError: no API config with that id
        """
        current = await self.get_global_settings()
        apis = []
        updated = None
        for api in current.apis:
            if api.id == api_id:
                api = ApiConfig.model_validate({**api.model_dump(), **patch})
                updated = api
            apis.append(api)

        if updated is None:
            raise NotFoundError("API config", api_id)

        current.apis = apis
        await self.save_global_settings(current)
        return updated

    async def mark_api_status(self, api_id: str, status: str, last_run: Optional[datetime] = None) -> ApiConfig:
        patch = {"status": status}
        if last_run is not None:
            patch["last_run"] = last_run
        return await self.update_api_config(api_id, patch)

    async def get_enabled_notifications(self, trigger: str) -> List[NotificationConfig]:
        current = await self.get_global_settings()
        return [
            config for config in current.notifications
            if config.enabled and trigger in config.triggers
        ]
