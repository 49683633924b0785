import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from .extensions import db
from .services.store import ClinicStore
from .utils.timestamps import utcnow

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()

JOB_ID = "complete_past_appointments"


def complete_past_appointments(app):
    """Mark Scheduled/Confirmed appointments whose end time has passed as Completed."""
    now = utcnow()
    with app.app_context():
        store = ClinicStore(db.session)
        try:
            count = store.complete_past_appointments(now)
            store.commit()
        except Exception:
            store.rollback()
            logger.exception(f"[SCHEDULER] {now:%Y-%m-%d %H:%M:%S} - Error auto-completing appointments")
            return 0
        finally:
            db.session.remove()

    if count:
        logger.info(f"[SCHEDULER] {now:%Y-%m-%d %H:%M:%S} - Auto-completed {count} appointment(s)")
    else:
        logger.debug(f"[SCHEDULER] {now:%Y-%m-%d %H:%M:%S} - No appointments to auto-complete")
    return count


def init_scheduler(app):
    """Start the background scheduler with the appointment job bound to ``app``."""
    minutes = app.config.get("SCHEDULER_INTERVAL_MINUTES", 5)
    scheduler.add_job(
        complete_past_appointments,
        "interval",
        minutes=minutes,
        args=[app],
        id=JOB_ID,
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info(f"[SCHEDULER] Scheduler started, running every {minutes} minute(s)")
        atexit.register(lambda: scheduler.shutdown(wait=False))
    else:
        logger.info("[SCHEDULER] Scheduler already running (skipping duplicate start)")
    return scheduler
