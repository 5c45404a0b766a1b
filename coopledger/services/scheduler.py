"""Background scheduler for the overdue-loan sweep."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coopledger.core.config import settings
from coopledger.db.base import SessionLocal, atomic
from coopledger.services.period import flag_overdue_loans

logger = logging.getLogger(__name__)

scheduler: AsyncIOScheduler | None = None

SWEEP_JOB_ID = "overdue_loan_sweep"


def run_scheduled_tasks() -> None:
    """Mark ACTIVE loans past maturity as DEFAULTED.

    Runs independently of month closing; no coordination with it.
    """
    db = SessionLocal()
    try:
        with atomic(db):
            flagged = flag_overdue_loans(db)
        if flagged:
            logger.info("Overdue sweep defaulted %d loan(s): %s", len(flagged), ", ".join(flagged))
    except Exception:
        logger.exception("Overdue loan sweep failed")
    finally:
        db.close()


def is_running() -> bool:
    return scheduler is not None and scheduler.running


def start_scheduler() -> None:
    """Start the sweep on an interval of ``SCHEDULER_INTERVAL_MINUTES``."""
    global scheduler
    minutes = settings.SCHEDULER_INTERVAL_MINUTES

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_tasks,
        trigger=IntervalTrigger(minutes=minutes),
        id=SWEEP_JOB_ID,
        name="Default overdue loans",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Overdue sweep scheduled every %d minutes", minutes)


def stop_scheduler() -> None:
    global scheduler
    if is_running():
        scheduler.shutdown(wait=False)
        logger.info("Overdue sweep scheduler shut down")
    scheduler = None


def reschedule_jobs(minutes: int) -> None:
    if not is_running():
        raise RuntimeError("Scheduler is not running")
    scheduler.reschedule_job(SWEEP_JOB_ID, trigger=IntervalTrigger(minutes=minutes))
    logger.info("Overdue sweep rescheduled to every %d minutes", minutes)


def get_scheduler_status() -> dict:
    if not is_running():
        return {"running": False, "interval_minutes": None, "jobs": []}

    jobs = scheduler.get_jobs()
    minutes = settings.SCHEDULER_INTERVAL_MINUTES
    if jobs and hasattr(jobs[0].trigger, "interval"):
        minutes = int(jobs[0].trigger.interval.total_seconds() // 60)

    return {
        "running": True,
        "interval_minutes": minutes,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in jobs
        ],
    }
