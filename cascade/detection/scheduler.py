"""
Alert Scheduler

Runs the alert generation workflow on an interval. Runs need no lock or
leader election: alert writes are deduplicated by (stream_id, type), so
overlapping or interrupted runs only re-detect the same candidates.

Uses APScheduler for job scheduling.
"""

import logging
from datetime import datetime
from typing import Optional

from cascade.config import settings
from cascade.database import async_session_maker
from cascade.streams.numeric import utcnow
from cascade.streams.repository import StreamRepository
from .sink import SqlAlchemyAlertSink
from .workflow import AlertWorkflow, SnapshotFetchError

logger = logging.getLogger(__name__)


class AlertScheduler:
    """
    Manages scheduled alert generation runs.

    This class can be used with APScheduler or any other job scheduler.
    It provides methods that can be called on schedule.
    """

    def __init__(self, session_factory=async_session_maker):
        self.session_factory = session_factory
        self._running = False
        self._last_run: Optional[datetime] = None
        self._last_summary: Optional[dict] = None

    async def run_alert_generation(self, organization_id: Optional[str] = None) -> dict:
        """
        Scan streams and persist new alerts.

        Should be scheduled every ALERT_SCAN_INTERVAL_MINUTES.

        Returns summary of the run. A failed snapshot fetch is recorded in
        the summary's errors and left for the next scheduled run.
        """
        logger.info("Starting alert generation run")
        self._running = True
        self._last_run = utcnow()

        summary = {
            "run_type": "alert_generation",
            "organization_id": organization_id,
            "started_at": self._last_run.isoformat(),
            "alerts_checked": 0,
            "alerts_created": 0,
            "alerts_failed": 0,
            "errors": [],
        }

        try:
            async with self.session_factory() as db:
                workflow = AlertWorkflow(
                    source=StreamRepository(db),
                    sink=SqlAlchemyAlertSink(self.session_factory),
                )
                result = await workflow.run(organization_id)

            summary["alerts_checked"] = result.alerts_checked
            summary["alerts_created"] = result.alerts_created
            summary["alerts_failed"] = result.alerts_failed
        except SnapshotFetchError as e:
            logger.error(f"Alert generation run aborted: {e}")
            summary["errors"].append({"error": str(e)})
        finally:
            self._running = False

        summary["completed_at"] = utcnow().isoformat()
        self._last_summary = summary
        logger.info(
            f"Alert generation run completed: {summary['alerts_created']} created "
            f"of {summary['alerts_checked']} checked"
        )
        return summary

    def get_status(self) -> dict:
        """Get scheduler status including last run time."""
        return {
            "running": self._running,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_summary": self._last_summary,
        }


# Singleton instance for use across the application
alert_scheduler = AlertScheduler()


def setup_apscheduler(scheduler, interval_minutes: Optional[int] = None):
    """
    Configure APScheduler with the alert generation job.

    Usage:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler)
        scheduler.start()

    Args:
        scheduler: APScheduler instance (AsyncIOScheduler)
        interval_minutes: Override for ALERT_SCAN_INTERVAL_MINUTES
    """
    scheduler.add_job(
        alert_scheduler.run_alert_generation,
        'interval',
        minutes=interval_minutes or settings.ALERT_SCAN_INTERVAL_MINUTES,
        id='alert_generation',
        name='Stream Alert Generation',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info("Alert generation job configured")
