"""
🚀 ENTERPRISE: Celery tasks for fee capacity bookkeeping.
"""

import logging

from celery import shared_task

from apps.conferences.capacity import recount_sold_counts
from apps.conferences.models import Conference

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def recount_fee_sold_counts(self, conference_id=None):
    """
    Rebuild ``sold_count`` on every custom fee from the registrations that
    hold a slot. Runs nightly; counters only drift when rows are edited
    outside the registration services.
    """
    conferences = Conference.objects.filter(registration_fees__isnull=False).distinct()
    if conference_id:
        conferences = conferences.filter(id=conference_id)

    fixed = 0
    for conference in conferences:
        changed = recount_sold_counts(conference)
        fixed += len(changed)

    logger.info(f"[CAPACITY] Recount finished, {fixed} fee(s) corrected")
    return {'fees_corrected': fixed}
