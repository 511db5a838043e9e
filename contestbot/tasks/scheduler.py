import logging

from apscheduler.triggers.cron import CronTrigger

from contestbot.scrapers.common import utc_now

logger = logging.getLogger(__name__)


def run_refresh(service, send_digest=False):
    """Refresh + arm, shielding the scheduler thread from any failure."""
    try:
        contests = service.refresh_and_arm()
        if send_digest:
            service.send_tomorrow_digest(contests)
        return contests
    except Exception as e:
        logger.error(f"Scheduled contest refresh failed: {e}")
        return []


def init_scheduler(app):
    """Start the reminder scheduler with the periodic and start-up refresh jobs."""
    if not app.config.get('SCHEDULER_ENABLED', False):
        logger.info("Scheduler disabled by config")
        return

    reminders = app.extensions['reminders']
    service = app.extensions['contest_service']
    scheduler = reminders.scheduler

    schedule = app.config.get('CONTEST_CHECK_SCHEDULE', '0 12 * * *')
    logger.info(f"Scheduling daily contest check at cron schedule: {schedule}")
    scheduler.add_job(
        run_refresh,
        CronTrigger.from_crontab(schedule, timezone='UTC'),
        args=[service],
        kwargs={'send_digest': True},
        id='contest_refresh',
        replace_existing=True,
        coalesce=True,
    )
    # Initial arming runs on the scheduler thread so start-up is not blocked on providers.
    scheduler.add_job(
        run_refresh,
        trigger='date',
        run_date=utc_now(),
        args=[service],
        id='contest_refresh_startup',
        replace_existing=True,
        misfire_grace_time=None,
    )

    try:
        reminders.start()
        logger.info("Scheduler started successfully")
    except Exception as e:
        logger.error(f"Scheduler failed to start: {e}")
