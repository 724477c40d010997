"""Background scheduler that keeps exchange rates and the BTC price fresh."""

import asyncio
import logging
from datetime import datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from btc_tracker.lib.config import PRICE_UPDATE_INTERVAL_SECONDS
from btc_tracker.services.rate_refresher import RateRefresher

logger = logging.getLogger(__name__)


class RateRefreshScheduler:
    """Runs RateRefresher.refresh on a fixed interval."""

    JOB_ID = "rate_refresh"

    def __init__(self, refresher: RateRefresher) -> None:
        """Initialize rate refresh scheduler."""
        self.scheduler = BackgroundScheduler()
        self.refresher = refresher
        self.is_running = False

    def start(
        self, interval_seconds: int = PRICE_UPDATE_INTERVAL_SECONDS, run_immediately: bool = True
    ) -> None:
        """
        Start the scheduler daemon.

        Args:
            interval_seconds: Seconds between refreshes (default 300)
            run_immediately: Run the first refresh right away instead of after one interval
        """
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        job_options: dict[str, Any] = {}
        if run_immediately:
            job_options["next_run_time"] = datetime.now()

        self.scheduler.add_job(
            self.run_refresh,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=self.JOB_ID,
            name="Exchange Rate Refresh",
            replace_existing=True,
            max_instances=1,
            **job_options,
        )

        self.scheduler.start()
        self.is_running = True
        logger.info(f"Scheduler started - refreshing rates every {interval_seconds}s")

    def stop(self) -> None:
        """Stop the scheduler daemon."""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=True)
        self.is_running = False
        logger.info("Scheduler stopped")

    def run_refresh(self) -> bool:
        """Run one refresh; failures are logged and the store keeps its last rates."""
        start_time = datetime.now()

        try:
            ok = asyncio.run(self.refresher.refresh())
        except Exception as e:
            logger.error(f"Rate refresh job crashed: {e}", exc_info=True)
            return False

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Rate refresh {'completed' if ok else 'failed'} in {duration:.1f}s")
        return ok

    def get_status(self) -> dict[str, Any]:
        """
        Get scheduler status.

        Returns:
            Dict with running flag, jobs and the age of the current rates
        """
        jobs_list: list[dict[str, Any]] = []
        status: dict[str, Any] = {
            "running": self.is_running,
            "jobs": jobs_list,
            "rates_last_updated": self.refresher.store.get_rates_last_updated(),
        }

        if self.is_running:
            for job in self.scheduler.get_jobs():
                jobs_list.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                    }
                )

        return status
