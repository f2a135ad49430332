"""
Background scheduler for periodic tasks.

- Sweep orphaned materials: materials whose owner was deleted but whose own
  delete never ran (the user cascade is two separate commits).
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from sschool.core.exceptions import SchoolAPIError
from sschool.services.material_service import material_service

logger = logging.getLogger(__name__)


def sweep_orphaned_materials_job(session_factory: sessionmaker) -> int:
    """Delete materials without an owner; returns how many were removed"""
    db = session_factory()
    try:
        removed = material_service.sweep_orphans(db)
        if removed:
            logger.info(f"Orphan sweep completed: deleted {removed} materials")
        else:
            logger.info("Orphan sweep completed: no orphaned materials found")
        return removed
    except SchoolAPIError as e:
        # Already rolled back; the next run retries
        logger.error(f"Error in sweep_orphaned_materials_job: {e.message}")
        return 0
    finally:
        db.close()


def build_scheduler(session_factory: sessionmaker, interval_hours: int) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        sweep_orphaned_materials_job,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[session_factory],
        id="sweep_orphaned_materials",
        name="Sweep orphaned materials",
        replace_existing=True,
    )
    return scheduler


def start_scheduler(scheduler: BackgroundScheduler) -> None:
    """Start the background scheduler; called from the app lifespan"""
    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started. Orphan sweep scheduled.")


def stop_scheduler(scheduler: BackgroundScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
