"""
User lead sync - on-demand and daily-sweep provider syncs.

Users are processed one at a time with a fixed pause between them to bound
outbound traffic. One user's failure is logged and the sweep moves on.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.config import settings
from leadmatch.database import AsyncSessionLocal
from leadmatch.matching.core.sync_orchestrator import SyncOrchestrator, SyncReport
from leadmatch.models import UserPreference
from leadmatch.services.preference_store import PreferenceStore
from leadmatch.services.user_store import UserStore

logger = logging.getLogger(__name__)


class UserLeadSyncService:
    """Runs the sync orchestrator for one user or for every active user"""

    def __init__(
        self,
        orchestrator: Optional[SyncOrchestrator] = None,
        session_factory=AsyncSessionLocal,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        user_delay_seconds: Optional[float] = None,
    ):
        self.orchestrator = orchestrator or SyncOrchestrator()
        self.session_factory = session_factory
        self.sleep = sleep
        self.user_delay_seconds = (
            settings.SWEEP_USER_DELAY_SECONDS if user_delay_seconds is None else user_delay_seconds
        )

    async def sync_preference(self, db: AsyncSession, preference: UserPreference) -> SyncReport:
        """Sync one preference and fold the report into its stats."""
        report = await self.orchestrator.sync_leads_for_user(preference)

        # Zero counts keep the previous value; api calls accumulate
        await PreferenceStore(db).update_stats(
            preference,
            total_leads=report.total_leads or preference.total_leads or 0,
            qualified_leads=report.qualified_leads or preference.qualified_leads or 0,
            api_calls=(preference.api_calls or 0) + report.api_calls,
            success_rate=report.success_rate or preference.success_rate or 0,
        )
        return report

    async def trigger_manual_sync_for_user(self, user_id: str, db: Optional[AsyncSession] = None) -> SyncReport:
        """
        Raises:
            NotFoundError: the user has no preference
        """
        if db is not None:
            preference = await PreferenceStore(db).require_preference(user_id)
            return await self.sync_preference(db, preference)

        async with self.session_factory() as session:
            preference = await PreferenceStore(session).require_preference(user_id)
            return await self.sync_preference(session, preference)

    async def sync_leads_for_all_users(self) -> Dict[str, int]:
        """Daily sweep over every active user with at least one provider key."""
        async with self.session_factory() as db:
            users = await UserStore(db).find_active()
            user_refs = [(user.id, user.email) for user in users]

        summary = {"users": len(user_refs), "synced": 0, "skipped": 0, "failed": 0}
        if not user_refs:
            logger.info("No active users found for lead sync")
            return summary

        logger.info(f"🔄 Found {len(user_refs)} active users to sync leads for")

        for user_id, email in user_refs:
            try:
                async with self.session_factory() as db:
                    preference = await PreferenceStore(db).get_preference(user_id)
                    if preference is None:
                        logger.info(f"No preferences found for user {email}, skipping")
                        summary["skipped"] += 1
                        continue
                    if not preference.config.api.keys.configured():
                        logger.info(f"No API keys configured for user {email}, skipping")
                        summary["skipped"] += 1
                        continue

                    report = await self.sync_preference(db, preference)
                    summary["synced"] += 1
                    logger.info(f"✅ Synced {report.total_leads} leads for user {email}")
            except Exception as e:
                summary["failed"] += 1
                logger.error(f"❌ Error processing user {email}: {e}", exc_info=True)

            await self.sleep(self.user_delay_seconds)

        logger.info(
            f"🏁 Lead sync sweep complete: {summary['synced']} synced, "
            f"{summary['skipped']} skipped, {summary['failed']} failed"
        )
        return summary
