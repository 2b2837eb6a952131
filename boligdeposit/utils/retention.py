"""
Scheduled GDPR maintenance.

Two recurring APScheduler jobs: anonymizing the processing ledger of
inactive users, and resuming erasure jobs that stopped partway. Both call
through the shared ``GDPRCompliance`` service and never raise into the
scheduler.
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


async def anonymize_inactive_users(service, inactive_days: int) -> int:
    """
    Returns the number of records anonymized, or 0 on failure (graceful
    degradation; the next run picks them up).
    """
    try:
        return await service.anonymize_inactive_users(inactive_days)
    except Exception as exc:
        logger.warning("retention: anonymization failed: %s", exc)
        return 0


async def resume_pending_erasures(service) -> int:
    """Returns the number of erasure jobs that completed on this run."""
    try:
        results = await service.resume_erasures()
    except Exception as exc:
        logger.warning("retention: erasure resume failed: %s", exc)
        return 0

    completed = sum(1 for result in results if result)
    if len(results) != completed:
        logger.error("retention: %d of %d erasure jobs still failing", len(results) - completed, len(results))
    return completed


def install_maintenance_jobs(
    scheduler,
    service,
    inactive_days: int,
    interval_hours: int = 24,
) -> None:
    """
    Register the maintenance jobs with the application's scheduler.

    Args:
        scheduler: The application's AsyncIOScheduler.
        service: The GDPRCompliance instance built at startup.
        inactive_days: Ledger rows of users inactive this long are anonymized.
        interval_hours: How often to run (default: once daily).
    """
    scheduler.add_job(
        anonymize_inactive_users,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[service, inactive_days],
        id="gdpr_anonymization",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        resume_pending_erasures,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[service],
        id="gdpr_erasure_resume",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(
        "retention: installed (inactive=%d days, interval=%dh)",
        inactive_days,
        interval_hours,
    )
