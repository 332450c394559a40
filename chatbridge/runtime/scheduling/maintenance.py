"""Periodic maintenance jobs for the session registry."""

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from chatbridge.core.config.models import Config

if TYPE_CHECKING:
    from chatbridge.runtime.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Runs rate-limit pruning, state persistence and stale-session cleanup.

    Each job has its own interval; an interval of 0 leaves that job
    unscheduled. Job failures are logged and never stop the scheduler.
    """

    def __init__(self, registry: "SessionRegistry", config: Config):
        self.registry = registry
        self.config = config
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_running(self) -> bool:
        return bool(self._scheduler and self._scheduler.running)

    def job_ids(self) -> list[str]:
        if not self._scheduler:
            return []
        return sorted(job.id for job in self._scheduler.get_jobs())

    async def start(self) -> None:
        """Start the scheduler with one interval trigger per enabled job."""
        self._scheduler = AsyncIOScheduler()

        jobs = [
            ("prune_rate_limits", self.prune_rate_limits, self.config.rate_limit.prune_interval_seconds),
            ("persist_state", self.persist_state, self.config.sessions.persist_interval_seconds),
            ("cleanup_sessions", self.cleanup_sessions, self.config.sessions.cleanup_interval_hours * 3600),
        ]
        for job_id, func, interval_seconds in jobs:
            if interval_seconds <= 0:
                logger.info(f"Maintenance job '{job_id}' disabled")
                continue
            self._scheduler.add_job(
                func=func,
                trigger=IntervalTrigger(seconds=interval_seconds),
                id=job_id,
                name=f"Maintenance: {job_id}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        self._scheduler.start()
        logger.info(f"Maintenance scheduler started with jobs: {', '.join(self.job_ids()) or 'none'}")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Maintenance scheduler stopped")
        self._scheduler = None

    async def prune_rate_limits(self) -> int:
        try:
            pruned = self.registry.prune_rate_limits()
        except Exception as e:
            logger.error(f"Rate-limit pruning failed: {e}", exc_info=True)
            return 0
        if pruned:
            logger.info(f"Pruned {pruned} idle rate-limit window(s)")
        return pruned

    async def persist_state(self) -> None:
        try:
            await self.registry.persist()
        except Exception as e:
            logger.error(f"State persistence failed: {e}", exc_info=True)

    async def cleanup_sessions(self) -> int:
        logger.info("Starting periodic session cleanup")
        try:
            cleaned = await self.registry.sweep()
        except Exception as e:
            logger.error(f"Session cleanup failed: {e}", exc_info=True)
            return 0
        logger.info(f"Periodic cleanup completed, removed {cleaned} session(s)")
        return cleaned
