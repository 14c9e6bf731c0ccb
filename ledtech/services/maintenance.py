"""
Periodic housekeeping for the trust core.

Sweeps idle sessions and stale CSRF tokens, and enforces audit retention.
"""

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ledtech.api.dependencies import SecurityServices
from ledtech.api.metrics import update_active_sessions
from ledtech.config import Config
from ledtech.security.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class SecurityMaintenance:
    """Schedules the cleanup jobs on an AsyncIOScheduler."""

    def __init__(
        self,
        services: SecurityServices,
        session_interval: Optional[timedelta] = None,
        csrf_interval: Optional[timedelta] = None,
        audit_interval: Optional[timedelta] = None,
        audit_retention: Optional[timedelta] = None,
        clock: Clock = utcnow,
    ):
        self.services = services
        self.session_interval = session_interval or timedelta(
            minutes=Config.SESSION_CLEANUP_MINUTES
        )
        self.csrf_interval = csrf_interval or timedelta(minutes=Config.CSRF_CLEANUP_MINUTES)
        self.audit_interval = audit_interval or timedelta(hours=Config.AUDIT_CLEANUP_HOURS)
        self.audit_retention = audit_retention or timedelta(days=Config.AUDIT_RETENTION_DAYS)
        self.clock = clock
        self.scheduler = AsyncIOScheduler()

    def _schedule_jobs(self):
        self.scheduler.add_job(
            self.run_session_cleanup,
            IntervalTrigger(seconds=self.session_interval.total_seconds()),
            id="session_cleanup",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_csrf_cleanup,
            IntervalTrigger(seconds=self.csrf_interval.total_seconds()),
            id="csrf_cleanup",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_audit_retention,
            IntervalTrigger(seconds=self.audit_interval.total_seconds()),
            id="audit_retention",
            replace_existing=True,
        )

    def start(self):
        """Schedule the jobs and start the scheduler (needs a running loop)."""
        self._schedule_jobs()
        self.scheduler.start()
        logger.info("🧹 Security maintenance scheduled")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Security maintenance stopped")

    async def run_session_cleanup(self) -> int:
        removed = self.services.sessions.cleanup_expired_sessions()
        update_active_sessions(self.services.sessions.get_active_session_count())
        if removed:
            logger.info(f"Swept {removed} expired sessions")
        return removed

    async def run_csrf_cleanup(self) -> int:
        removed = self.services.csrf.cleanup()
        if removed:
            logger.info(f"Swept {removed} expired CSRF tokens")
        return removed

    async def run_audit_retention(self) -> int:
        """Drop audit entries older than the retention window."""
        return self.services.audit.cleanup(self.clock() - self.audit_retention)
