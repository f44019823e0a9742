"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from timelit.core.config import settings
from timelit.core.context import bind_job_run
from timelit.core.logging import configure_logging
from timelit.db.session import SessionLocal
from timelit.services.job_runner import run_backlog_for_all_users


logger = logging.getLogger(__name__)

BACKLOG_JOB_ID = "backlog_auto_schedule_job"


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.backlog_job_enabled)

    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.backlog_job_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running backlog job once on startup")
            run_backlog_job()
    else:
        logger.warning("Backlog job disabled via config; worker will idle")

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
        run_backlog_job,
        trigger="interval",
        minutes=settings.backlog_job_interval_minutes,
        id=BACKLOG_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Registered backlog job (every %s minutes)", settings.backlog_job_interval_minutes)


def run_backlog_job() -> None:
    with bind_job_run("backlog"):
        session = SessionLocal()
        try:
            result = run_backlog_for_all_users(session)
            logger.info(
                "Backlog job complete: users=%s, scheduled=%s, failed=%s, skipped=%s",
                result.users_processed,
                result.tasks_scheduled,
                result.tasks_failed,
                result.skipped_due_to_preferences,
            )
        except Exception:  # pragma: no cover - a failed run must not kill the scheduler thread
            logger.exception("Backlog job failed")
        finally:
            session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
