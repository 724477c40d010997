"""Unit tests for RateRefreshScheduler."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from btc_tracker.services.scheduler import RateRefreshScheduler


@pytest.fixture
def refresher(rate_store):
    """Provide a refresher mock bound to the loaded store."""
    mock_refresher = MagicMock()
    mock_refresher.store = rate_store
    mock_refresher.refresh = AsyncMock(return_value=True)
    return mock_refresher


@pytest.fixture
def scheduler(refresher):
    """Provide RateRefreshScheduler instance."""
    return RateRefreshScheduler(refresher)


@pytest.mark.unit
class TestRateRefreshScheduler:
    """Test suite for RateRefreshScheduler."""

    def test_init(self, scheduler):
        """Scheduler initializes correctly."""
        assert scheduler.scheduler is not None
        assert scheduler.is_running is False

    def test_start_scheduler(self, scheduler):
        """Scheduler starts with one interval job."""
        try:
            scheduler.start(interval_seconds=600, run_immediately=False)

            assert scheduler.is_running is True
            jobs = scheduler.scheduler.get_jobs()
            assert len(jobs) == 1
            assert jobs[0].id == "rate_refresh"
            assert jobs[0].name == "Exchange Rate Refresh"

        finally:
            scheduler.stop()

    def test_start_scheduler_already_running(self, scheduler):
        """Starting already running scheduler shows warning."""
        try:
            scheduler.start(run_immediately=False)

            with patch("btc_tracker.services.scheduler.logger") as mock_logger:
                scheduler.start(run_immediately=False)
                mock_logger.warning.assert_called_with("Scheduler already running")

        finally:
            scheduler.stop()

    def test_stop_scheduler(self, scheduler):
        """Scheduler stops successfully."""
        scheduler.start(run_immediately=False)
        scheduler.stop()

        assert scheduler.is_running is False

    def test_stop_when_not_running(self, scheduler):
        """Stopping an idle scheduler is a no-op."""
        scheduler.stop()

        assert scheduler.is_running is False

    def test_run_refresh_success(self, scheduler, refresher):
        """A refresh run reports the refresher's result."""
        assert scheduler.run_refresh() is True
        refresher.refresh.assert_awaited_once()

    def test_run_refresh_failure(self, scheduler, refresher):
        """A failed refresh is reported, not raised."""
        refresher.refresh.return_value = False

        assert scheduler.run_refresh() is False

    def test_run_refresh_crash(self, scheduler, refresher):
        """Unexpected errors in the job are logged and swallowed."""
        refresher.refresh.side_effect = RuntimeError("boom")

        with patch("btc_tracker.services.scheduler.logger") as mock_logger:
            assert scheduler.run_refresh() is False

        mock_logger.error.assert_called_once()

    def test_get_status_not_running(self, scheduler):
        """Status of an idle scheduler still reports rate age."""
        status = scheduler.get_status()

        assert status["running"] is False
        assert status["jobs"] == []
        assert status["rates_last_updated"]["seconds_ago"] >= 0

    def test_get_status_running(self, scheduler):
        """Status lists the refresh job and its next run."""
        try:
            scheduler.start(interval_seconds=300, run_immediately=False)
            status = scheduler.get_status()

            assert status["running"] is True
            assert len(status["jobs"]) == 1
            assert status["jobs"][0]["id"] == "rate_refresh"
            assert status["jobs"][0]["next_run"] is not None

        finally:
            scheduler.stop()
