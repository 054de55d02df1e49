"""
APScheduler jobs: per-API cron imports and the daily user lead sync.

All timers live in one JobRegistry built at startup and shut down with the
application.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Set
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from leadmatch.config import settings
from leadmatch.database import AsyncSessionLocal
from leadmatch.exceptions import LeadMatchError, SchedulerExhausted
from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.schemas.settings import ApiConfig, GlobalSettings, ScheduleConfig
from leadmatch.services.api_import import ApiImportService
from leadmatch.services.settings_store import SettingsStore
from leadmatch.services.user_sync import UserLeadSyncService

logger = logging.getLogger(__name__)

DAILY_SWEEP_JOB_ID = "daily_user_lead_sync"
API_JOB_PREFIX = "api_import_"


class JobRegistry:
    """
    Owns the scheduler and every job installed on it.

    API jobs are tracked by id so a reconfiguration can remove all of them
    before installing the new set.
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        session_factory=AsyncSessionLocal,
        sync_service: Optional[UserLeadSyncService] = None,
        emitter=None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=settings.DEFAULT_TIMEZONE)
        self.session_factory = session_factory
        self.rate_limiter = rate_limiter or RateLimiter()
        self.sync_service = sync_service or UserLeadSyncService(session_factory=session_factory)
        self.emitter = emitter
        self.sleep = sleep
        self.api_job_ids: Set[str] = set()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self):
        """Install the daily sweep and the API jobs, then start the scheduler."""
        if self.scheduler.running:
            logger.info("Scheduler already running")
            return

        self.schedule_daily_sweep()
        try:
            async with self.session_factory() as db:
                global_settings = await SettingsStore(db).get_global_settings()
            self.restart_api_jobs(global_settings)
        except Exception as e:
            logger.error(f"❌ Could not load API schedules: {e}")

        self.scheduler.start()
        logger.info("✅ APScheduler started successfully!")
        for job in self.scheduler.get_jobs():
            logger.info(f"   • {job.name}: Next run at {getattr(job, 'next_run_time', None)}")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.api_job_ids.clear()
        self.rate_limiter.reset()

    @property
    def job_count(self) -> int:
        return len(self.scheduler.get_jobs())

    # ========================================================================
    # DAILY SWEEP
    # ========================================================================

    def schedule_daily_sweep(self):
        self.scheduler.add_job(
            self.run_daily_sweep,
            trigger=CronTrigger(
                hour=settings.DAILY_SYNC_HOUR,
                minute=settings.DAILY_SYNC_MINUTE,
                timezone=settings.DEFAULT_TIMEZONE,
            ),
            id=DAILY_SWEEP_JOB_ID,
            name="Daily User Lead Sync",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(
            f"✅ Scheduled: Daily User Lead Sync "
            f"({settings.DAILY_SYNC_HOUR:02d}:{settings.DAILY_SYNC_MINUTE:02d} {settings.DEFAULT_TIMEZONE})"
        )

    async def run_daily_sweep(self):
        try:
            logger.info("Starting scheduled daily user lead sync...")
            await self.sync_service.sync_leads_for_all_users()
        except Exception as e:
            logger.error(f"❌ Error in scheduled daily user lead sync: {e}", exc_info=True)

    # ========================================================================
    # API JOBS
    # ========================================================================

    def clear_api_jobs(self):
        for job_id in list(self.api_job_ids):
            if self.scheduler.get_job(job_id) is not None:
                self.scheduler.remove_job(job_id)
        self.api_job_ids.clear()

    def restart_api_jobs(self, global_settings: GlobalSettings) -> List[str]:
        """
        Replace every API job with the enabled configs of `global_settings`.

        Configs with an invalid cron string or timezone are logged and skipped.

        Returns:
            Ids of the installed jobs
        """
        self.clear_api_jobs()

        schedule = global_settings.schedule
        if not schedule.enabled:
            logger.info("API scheduling disabled; no API jobs installed")
            return []

        for api_config in global_settings.apis:
            if not api_config.enabled or not api_config.schedule:
                continue

            job_id = f"{API_JOB_PREFIX}{api_config.id}"
            try:
                trigger = CronTrigger.from_crontab(api_config.schedule, timezone=schedule.timezone)
            except (ValueError, KeyError) as e:
                logger.error(f"❌ Invalid schedule for API {api_config.name} ({api_config.schedule}): {e}")
                continue

            self.scheduler.add_job(
                self.run_api_job,
                trigger=trigger,
                args=[api_config.id],
                id=job_id,
                name=f"API Import: {api_config.name}",
                replace_existing=True,
                max_instances=1,
            )
            self.api_job_ids.add(job_id)
            logger.info(f"✅ Scheduled API: {api_config.name} with cron: {api_config.schedule}")

        return sorted(self.api_job_ids)

    async def run_api_with_retry(self, api_config: ApiConfig, schedule: ScheduleConfig) -> int:
        """
        Execute one API config, retrying failed attempts.

        Returns:
            Number of leads imported

        Raises:
            SchedulerExhausted: every attempt failed
        """
        attempts = schedule.retry_attempts or settings.DEFAULT_RETRY_ATTEMPTS
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                async with self.session_factory() as db:
                    service = ApiImportService(db, emitter=self.emitter, rate_limiter=self.rate_limiter)
                    saved = await service.execute_api_call(api_config, max_leads=schedule.max_leads_per_run)
                return len(saved)
            except LeadMatchError as e:
                last_error = e.message
                logger.warning(f"⚠️ API {api_config.name} attempt {attempt}/{attempts} failed: {e.message}")
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.error(f"❌ API {api_config.name} attempt {attempt}/{attempts} crashed: {e}", exc_info=True)

            if attempt < attempts:
                await self.sleep(schedule.retry_delay * 60)

        raise SchedulerExhausted(api_config.name, attempts, last_error)

    async def run_api_job(self, api_id: str):
        """Cron callback; never raises."""
        try:
            async with self.session_factory() as db:
                global_settings = await SettingsStore(db).get_global_settings()

            api_config = global_settings.get_api(api_id)
            if api_config is None or not api_config.enabled:
                logger.warning(f"⚠️ Scheduled API {api_id} no longer enabled, skipping")
                return

            imported = await self.run_api_with_retry(api_config, global_settings.schedule)
            logger.info(f"✅ Scheduled API {api_config.name}: {imported} leads imported")
        except SchedulerExhausted as e:
            logger.error(f"❌ {e.message} (last error: {e.details.get('last_error')})")
        except Exception as e:
            logger.error(f"❌ Scheduled API {api_id} failed: {e}", exc_info=True)
