"""
Re-engagement Job - scheduled runs of the notification pipeline.

Runs in the worker process as an alternative to an external scheduler calling
POST /notifications/re-engagement. A run is skipped while the previous one in
this process is still going; separate processes are not coordinated.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from reengagement.config import Settings, get_settings
from reengagement.db.pool import db_pool
from reengagement.infrastructure.observability.logging import get_logger
from reengagement.services.reengagement_service import run_reengagement

logger = get_logger(__name__)

ERROR_BACKOFF_SECONDS = 60


class ReEngagementJob:
    """Background job wrapper with a run guard and overdue detection."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.last_run_summary: dict | None = None

    @property
    def interval_minutes(self) -> int:
        return self.settings.REENGAGEMENT_JOB_INTERVAL_MINUTES

    async def _ensure_pool(self) -> None:
        if db_pool.initialized or not self.settings.SUPABASE_DB_URL:
            return
        await db_pool.initialize(
            self.settings.SUPABASE_DB_URL, self.settings.get_db_pool_config()
        )

    async def run_once(self) -> dict:
        """
        Run a single invocation of the pipeline.

        Returns:
            dict: Run summary, or a skip marker when a run is already active

        Raises:
            ConfigurationError: If required settings are missing
            ReEngagementError: If the eligible users cannot be fetched
        """
        if self.is_running:
            logger.warning("Re-engagement job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        try:
            self.is_running = True
            started = datetime.now(UTC)

            await self._ensure_pool()
            batch = await run_reengagement(self.settings)

            self.last_run_time = datetime.now(UTC)
            self.last_run_summary = {
                "job_run": "reengagement",
                "start_time": started.isoformat(),
                "duration_seconds": round((self.last_run_time - started).total_seconds(), 2),
                "total": batch.total_candidates,
                "successful": batch.success_count,
                "errors": batch.error_count,
            }
            return self.last_run_summary

        finally:
            self.is_running = False

    def health_check(self) -> dict:
        """Unhealthy when the job has not completed a run in twice its interval."""
        now = datetime.now(UTC)
        overdue_threshold = timedelta(minutes=self.interval_minutes * 2)
        is_overdue = self.last_run_time is not None and (now - self.last_run_time) > overdue_threshold

        health_status = {
            "healthy": not is_overdue,
            "service": "reengagement_job",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "is_overdue": is_overdue,
        }

        if is_overdue:
            health_status["warning"] = (
                f"Job overdue by {(now - self.last_run_time).total_seconds() / 60:.1f} minutes"
            )

        return health_status

    def report_failure(self, error: Exception) -> None:
        logger.error(
            "Re-engagement job run failed", error=str(error), error_type=type(error).__name__
        )
        health = self.health_check()
        if not health["healthy"]:
            logger.warning("Re-engagement job overdue", **health)


async def run_reengagement_once() -> None:
    """Single run, for cron-style workers."""
    job = ReEngagementJob(get_settings())
    try:
        summary = await job.run_once()
        logger.info("Re-engagement job completed", **summary)
    finally:
        await db_pool.close()


async def start_reengagement_scheduler() -> None:
    """
    Run the pipeline forever at REENGAGEMENT_JOB_INTERVAL_MINUTES.

    Any failure is logged and retried after a short backoff; the next run is
    the retry, there is no per-user retry.
    """
    job = ReEngagementJob(get_settings())
    logger.info("Starting re-engagement scheduler", interval_minutes=job.interval_minutes)

    try:
        while True:
            try:
                summary = await job.run_once()
                if not summary.get("skipped", False):
                    logger.info("Re-engagement job cycle completed", **summary)

                await asyncio.sleep(job.interval_minutes * 60)

            except Exception as e:
                # Configuration, selection and pool start-up failures all back off
                job.report_failure(e)
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)
    finally:
        await db_pool.close()
