"""Scheduler worker that reconciles habit streaks after each day closes."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from lets_habit.core.config import settings
from lets_habit.core.logging import configure_logging
from lets_habit.db.session import SessionLocal
from lets_habit.services.job_runner import reconcile_all_habits


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running reconciliation once on startup")
            run_reconcile_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_reconcile_job,
        trigger="cron",
        hour=settings.reconcile_job_hour,
        minute=settings.reconcile_job_minute,
        id="reconcile_habits_job",
        replace_existing=True,
    )
    logger.info(
        "Registered reconcile job (daily at %02d:%02d %s)",
        settings.reconcile_job_hour,
        settings.reconcile_job_minute,
        settings.scheduler_timezone,
    )


def run_reconcile_job(session_factory=SessionLocal) -> None:
    session = session_factory()
    try:
        result = reconcile_all_habits(session)
        logger.info(
            "Reconcile job complete: habits=%s, stale=%s, reset=%s, failed=%s",
            result.habits_processed,
            result.stale_records_removed,
            result.streaks_reset,
            result.habits_failed,
        )
    except Exception:
        logger.exception("Reconcile job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
