"""Scheduler service for periodic usage maintenance using APScheduler."""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import engine
from app.services.usage_service import usage_service

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for managing scheduled maintenance jobs.

    Profiles without an active subscription have no Stripe invoice to
    trigger their monthly reset, so the scheduler rolls them over on the
    first of each month.
    """

    MONTHLY_RESET_JOB_ID = "monthly_usage_reset"

    def __init__(self):
        """Initialize the scheduler service."""
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._session_factory: Optional[async_sessionmaker] = None

    def _get_session_factory(self) -> async_sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    async def start(self) -> None:
        """Register jobs and start the scheduler."""
        logger.info("[Scheduler] Starting scheduler service...")

        self.scheduler.add_job(
            self.reset_monthly_usage,
            CronTrigger(day=1, hour=0, minute=0, timezone="UTC"),
            id=self.MONTHLY_RESET_JOB_ID,
            replace_existing=True,
        )

        self.scheduler.start()
        logger.info("[Scheduler] Scheduler started successfully")

    async def shutdown(self) -> None:
        """Shutdown the scheduler gracefully."""
        logger.info("[Scheduler] Shutting down scheduler service...")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("[Scheduler] Scheduler shutdown complete")

    async def reset_monthly_usage(self) -> int:
        """Roll over every profile without an active subscription.

        Returns:
            Number of profiles reset.
        """
        logger.info("[Scheduler] Running monthly usage reset...")
        session_factory = self._get_session_factory()
        try:
            async with session_factory() as session:
                count = await usage_service.reset_unsubscribed_users(session)
                await session.commit()
        except Exception as e:
            logger.error(f"[Scheduler] Monthly usage reset failed: {e}")
            return 0
        logger.info(f"[Scheduler] Reset usage for {count} profile(s)")
        return count


scheduler_service = SchedulerService()
