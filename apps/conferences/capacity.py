"""
🚀 ENTERPRISE: Capacity tracking for custom registration fees.

Claims and releases are single conditional UPDATE statements, so the
"at most ``capacity`` registrations" guarantee holds across processes
without any in-memory lock:

    UPDATE conferences_customregistrationfee
       SET sold_count = sold_count + 1
     WHERE id = %s AND (capacity IS NULL OR sold_count < capacity)

Zero rows affected means the fee is full (or gone).
"""

import logging

from django.db import transaction
from django.db.models import Count, F, Q

from apps.conferences.exceptions import CapacityExceeded, FeeNotFound
from apps.conferences.models import CustomRegistrationFee, Registration

logger = logging.getLogger(__name__)


def claim_fee_slot(fee_id):
    """
    Take one slot of ``fee_id``.

    Raises ``CapacityExceeded`` when the fee has no slot left and
    ``FeeNotFound`` when the row does not exist. Call inside the same
    ``transaction.atomic()`` block as the registration insert.
    """
    updated_rows = CustomRegistrationFee.objects.filter(
        Q(capacity__isnull=True) | Q(sold_count__lt=F('capacity')),
        id=fee_id,
    ).update(sold_count=F('sold_count') + 1)

    if updated_rows == 1:
        logger.info(f"[CAPACITY] Claimed slot on fee {fee_id}")
        return True

    if not CustomRegistrationFee.objects.filter(id=fee_id).exists():
        raise FeeNotFound(fee_id=str(fee_id))

    logger.warning(f"[CAPACITY] Claim rejected, fee {fee_id} is sold out")
    raise CapacityExceeded(fee_id=str(fee_id))


def release_fee_slot(fee_id):
    """Give one slot of ``fee_id`` back. ``sold_count`` never drops below 0."""
    updated_rows = CustomRegistrationFee.objects.filter(
        id=fee_id,
        sold_count__gt=0,
    ).update(sold_count=F('sold_count') - 1)

    if updated_rows:
        logger.info(f"[CAPACITY] Released slot on fee {fee_id}")
    else:
        logger.warning(f"[CAPACITY] Nothing to release on fee {fee_id}")
    return bool(updated_rows)


def slot_counts(conference):
    """``{fee_id: number of registrations holding a slot}`` for a conference."""
    rows = (
        Registration.objects.filter(
            conference=conference,
            registration_fee__isnull=False,
            holds_fee_slot=True,
        )
        .values('registration_fee')
        .annotate(total=Count('id'))
    )
    return {str(row['registration_fee']): row['total'] for row in rows}


def recount_sold_counts(conference):
    """
    Rebuild ``sold_count`` from the registrations holding a slot.

    Returns ``{fee_id: (old, new)}`` for the fees that drifted.
    """
    counts = slot_counts(conference)
    changed = {}
    with transaction.atomic():
        fees = CustomRegistrationFee.objects.select_for_update().filter(conference=conference)
        for fee in fees:
            actual = counts.get(str(fee.id), 0)
            if fee.capacity is not None and actual > fee.capacity:
                logger.error(
                    f"[CAPACITY] Fee {fee.id} has {actual} slot holders for capacity {fee.capacity}"
                )
                actual = fee.capacity
            if fee.sold_count != actual:
                changed[str(fee.id)] = (fee.sold_count, actual)
                CustomRegistrationFee.objects.filter(id=fee.id).update(sold_count=actual)

    if changed:
        logger.warning(f"[CAPACITY] Recount fixed {len(changed)} fee(s) for conference {conference.id}: {changed}")
    return changed
