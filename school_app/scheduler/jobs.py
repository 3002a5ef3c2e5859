# school_app/scheduler/jobs.py
import logging
from datetime import datetime
from typing import Optional

from beanie.operators import In
from pymongo.errors import PyMongoError

from school_app.models.enum import FeeDueStatus
from school_app.models.fee import FeeDue

logger = logging.getLogger("scheduler_jobs")


async def refresh_overdue_fee_dues(now: Optional[datetime] = None) -> int:
    """
    Re-evaluate open installments (pending / partial) and persist any status change,
    mostly pending -> overdue once the due date has passed. Returns the number updated.
    """
    now = now or datetime.now()
    logger.info(f"Running refresh_overdue_fee_dues job at {now}")
    processed = 0; updated = 0; errors = 0

    open_dues = await FeeDue.find(In(FeeDue.status, [FeeDueStatus.PENDING, FeeDueStatus.PARTIAL])).to_list()
    processed = len(open_dues)
    logger.info(f"Found {processed} open fee dues to check.")

    for due in open_dues:
        previous = due.status
        if due.refresh_status(now) == previous:
            continue
        due.updated_at = now
        try:
            await due.save()
            updated += 1
            logger.debug(f"Fee due {due.id}: {previous.value} -> {due.status.value}")
        except PyMongoError:
            logger.error(f"Error saving status for fee due {due.id}.", exc_info=True)
            errors += 1

    logger.info(f"Job finished. Processed: {processed}, Updated: {updated}, Errors: {errors}")
    return updated
