# personalizer/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
import pytz

from .config import TIMEZONE, DECAY_JOB_HOUR
from .maintenance import run_pattern_decay_job
from .logging_setup import get_logger

logger = get_logger("personalizer.scheduler")
scheduler = BackgroundScheduler()

DECAY_JOB_ID = "pattern_decay"

def _job_listener(event):
    if event.exception:
        logger.error(
            "JOB_ERROR",
            exc_info=event.exception,
            extra={"handled": False, "job_id": event.job_id, "run_time": str(event.scheduled_run_time)},
        )
    else:
        logger.info(
            "JOB_OK",
            extra={"job_id": event.job_id, "run_time": str(event.scheduled_run_time), "result": event.retval},
        )

def add_jobs():
    tz = pytz.timezone(TIMEZONE)
    trigger = CronTrigger(hour=DECAY_JOB_HOUR, minute=0, timezone=tz)
    scheduler.add_job(
        run_pattern_decay_job,
        trigger,
        id=DECAY_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    logger.info(f"Job registered: {DECAY_JOB_ID} at {DECAY_JOB_HOUR:02d}:00 {TIMEZONE}")

def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started")

def shutdown_scheduler(wait: bool = False):
    if scheduler.running:
        scheduler.shutdown(wait=wait)
        logger.info("APScheduler stopped")
