"""
Preference store - one matching configuration per user plus sync stats.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.exceptions import NotFoundError, ValidationError
from leadmatch.matching.scoring import score_breakdown
from leadmatch.models import UserPreference
from leadmatch.schemas.preference import PreferenceConfig, UserStatistics

logger = logging.getLogger(__name__)

STAT_FIELDS = ("total_leads", "qualified_leads", "converted_leads", "api_calls", "success_rate")


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge `patch` into a copy of `base`; lists are replaced."""
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class PreferenceStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_preference(self, user_id: str) -> Optional[UserPreference]:
        result = await self.db.execute(
            select(UserPreference).where(UserPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def require_preference(self, user_id: str) -> UserPreference:
        preference = await self.get_preference(user_id)
        if preference is None:
            raise NotFoundError("User preferences", user_id)
        return preference

    async def upsert_preference(self, user_id: str, patch: Dict[str, Any]) -> UserPreference:
        """
        Create or update the user's preference document.

        The patch is deep-merged into the stored document (or the defaults)
        and validated before anything is written.

        Raises:
            ValidationError: the merged document is invalid
        """
        if not user_id:
            raise ValidationError("user_id is required", field="user_id")

        preference = await self.get_preference(user_id)
        base = preference.preferences if preference and preference.preferences else PreferenceConfig().model_dump(mode="json")

        try:
            config = PreferenceConfig.model_validate(deep_merge(base, patch or {}))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid preferences",
                field="preferences",
                errors=[
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ],
            ) from e

        document = config.model_dump(mode="json")
        if preference is None:
            preference = UserPreference(user_id=user_id, preferences=document)
            self.db.add(preference)
            logger.info(f"📝 Created preferences for user {user_id}")
        else:
            preference.preferences = document

        await self.db.commit()
        await self.db.refresh(preference)
        return preference

    async def delete_preference(self, user_id: str):
        """Delete the preference; tracking rows are left in place."""
        preference = await self.require_preference(user_id)
        await self.db.delete(preference)
        await self.db.commit()
        logger.info(f"🗑️ Deleted preferences for user {user_id}")

    async def update_stats(self, preference: UserPreference, **fields) -> UserPreference:
        """Merge stat fields into the preference; `last_sync` is always bumped."""
        for name, value in fields.items():
            if name not in STAT_FIELDS:
                raise ValidationError(f"Unknown stat field: {name}", field=name)
            setattr(preference, name, value)
        preference.last_sync = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(preference)
        return preference

    async def get_user_statistics(self, user_id: str) -> UserStatistics:
        preference = await self.get_preference(user_id)
        if preference is None:
            return UserStatistics()
        return UserStatistics(
            **preference.stats,
            conversion_rate=preference.conversion_rate,
            qualification_rate=preference.qualification_rate,
        )

    async def test_lead_match(self, user_id: str, lead_data: Dict[str, Any]) -> Dict[str, Any]:
        preference = await self.require_preference(user_id)
        config = preference.config
        breakdown = score_breakdown(config, lead_data)
        return {
            "score": breakdown.score,
            "matches": breakdown.score >= config.scoring.thresholds.minimum,
            "breakdown": breakdown.to_dict(),
        }
