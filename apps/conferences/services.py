"""
🚀 ENTERPRISE: Registration pricing services.

Glue between the pure pricing engine (``vat``, ``tiers``, ``fees``) and
the stored conference, fee and registration rows:

- admin writes on custom fees (net/gross derived here, never typed twice)
- quoting a price for a registrant
- submitting a registration with its price snapshot and capacity claim
- cancelling a registration and giving its slot back
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from apps.conferences.capacity import claim_fee_slot, release_fee_slot, slot_counts
from apps.conferences.exceptions import (
    FeeNotFound,
    FeeUnavailable,
    InvalidAmount,
    InvalidCapacity,
    NoActiveTier,
)
from apps.conferences.fees import STATUS_ACTIVE, fee_status
from apps.conferences.models import Conference, CustomRegistrationFee, Registration
from apps.conferences.tiers import get_current_pricing, student_tier, tier_display_name
from apps.conferences.vat import fee_prices, to_decimal

logger = logging.getLogger(__name__)

FEE_FIELDS = ('name', 'description', 'valid_from', 'valid_to', 'is_active')


@dataclass(frozen=True)
class Quote:
    """Price a registrant would pay right now; copied onto the registration."""

    fee_name: str
    price_net: Decimal
    price_gross: Decimal
    vat_percentage: Decimal
    currency: str
    fee: Optional[CustomRegistrationFee] = None
    pricing_tier: str = ''

    @property
    def vat_amount(self) -> Decimal:
        return self.price_gross - self.price_net

    def as_dict(self) -> Dict[str, Any]:
        return {
            'fee_id': str(self.fee.id) if self.fee else None,
            'pricing_tier': self.pricing_tier or None,
            'fee_name': self.fee_name,
            'price_net': self.price_net,
            'price_gross': self.price_gross,
            'vat_amount': self.vat_amount,
            'vat_percentage': self.vat_percentage,
            'currency': self.currency,
        }


def _fee_vat(conference: Conference, data: Mapping[str, Any], current=None) -> Decimal:
    """Fee override first, then the fee's current rate, then the conference rate."""
    value = data.get('vat_percentage')
    if value is not None and value != '':
        return to_decimal(value)
    if current is not None:
        return current
    return conference.vat_percentage or Decimal('0')


def _fee_amounts(data: Mapping[str, Any], vat_percentage: Decimal, fallback_net=None):
    price_net = data.get('price_net')
    price_gross = data.get('price_gross')
    amount_is_gross = data.get('prices_include_vat')
    if amount_is_gross is None:
        amount_is_gross = price_net is None and price_gross is not None
    if amount_is_gross and price_gross is None:
        amount_is_gross = False

    amount = price_gross if amount_is_gross else price_net
    if amount is None:
        amount = fallback_net
    if amount is None:
        raise InvalidAmount('A net or gross price is required')
    return fee_prices(amount, vat_percentage, amount_is_gross=bool(amount_is_gross))


def _capacity(value, sold_count: int = 0) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        raise InvalidCapacity('Capacity must be a whole number', capacity=value)
    if capacity < 0:
        raise InvalidCapacity('Capacity must not be negative', capacity=value)
    if capacity < sold_count:
        raise InvalidCapacity(capacity=capacity, sold_count=sold_count)
    return capacity


def create_registration_fee(conference: Conference, data: Mapping[str, Any]) -> CustomRegistrationFee:
    """
    Create a custom fee from admin input.

    ``prices_include_vat`` says which side the typed amount is on; the
    fee's own ``vat_percentage`` overrides the conference rate.
    """
    vat_percentage = _fee_vat(conference, data)
    price_net, _gross = _fee_amounts(data, vat_percentage)

    display_order = data.get('display_order')
    if display_order is None:
        current_max = conference.registration_fees.aggregate(top=Max('display_order'))['top']
        display_order = -1 if current_max is None else current_max
        display_order += 1

    fee = CustomRegistrationFee(
        conference=conference,
        name=data['name'].strip(),
        description=data.get('description') or '',
        valid_from=data.get('valid_from'),
        valid_to=data.get('valid_to'),
        is_active=bool(data.get('is_active', True)),
        price_net=price_net,
        vat_percentage=vat_percentage,
        capacity=_capacity(data.get('capacity')),
        currency=conference.pricing_config.currency,
        display_order=display_order,
    )
    fee.save()
    logger.info(f"[FEES] Registration fee created: {fee.id} for conference {conference.id}")
    return fee


def update_registration_fee(fee: CustomRegistrationFee, data: Mapping[str, Any]) -> CustomRegistrationFee:
    """
    Apply a partial admin edit. Only the touched columns are written, so a
    concurrent capacity claim on ``sold_count`` is never overwritten.

    A capacity change locks the fee row until the write commits: claims
    racing the edit wait, then see the new capacity.
    """
    changed = set()
    for name in FEE_FIELDS:
        if name in data:
            value = data[name]
            if name == 'name':
                value = value.strip()
            elif name == 'description':
                value = value or ''
            setattr(fee, name, value)
            changed.add(name)

    if 'display_order' in data:
        fee.display_order = int(data['display_order'])
        changed.add('display_order')

    if {'price_net', 'price_gross', 'vat_percentage'} & set(data):
        vat_percentage = _fee_vat(fee.conference, data, current=fee.vat_percentage)
        fee.price_net, _gross = _fee_amounts(data, vat_percentage, fallback_net=fee.price_net)
        fee.vat_percentage = vat_percentage
        changed.update({'price_net', 'vat_percentage'})

    if 'capacity' in data:
        changed.add('capacity')

    if not changed:
        return fee

    with transaction.atomic():
        if 'capacity' in data:
            sold_count = (
                CustomRegistrationFee.objects.select_for_update()
                .values_list('sold_count', flat=True)
                .get(id=fee.id)
            )
            fee.capacity = _capacity(data['capacity'], sold_count)
        try:
            with transaction.atomic():
                fee.save(update_fields=changed | {'updated_at'})
        except IntegrityError:
            if 'capacity' not in changed:
                raise
            # Backends without row locks can still lose the race
            sold_count = CustomRegistrationFee.objects.values_list('sold_count', flat=True).get(id=fee.id)
            raise InvalidCapacity(capacity=fee.capacity, sold_count=sold_count)

    logger.info(f"[FEES] Registration fee {fee.id} updated: {sorted(changed)}")
    return fee


def delete_registration_fee(fee: CustomRegistrationFee) -> int:
    """
    Remove a fee. Registrations referencing it are detached and keep their
    price snapshot. Returns the number of detached registrations.
    """
    detached = fee.registrations.count()
    fee_id = fee.id
    fee.delete()
    logger.info(f"[FEES] Registration fee {fee_id} deleted, {detached} registration(s) detached")
    return detached


def reorder_registration_fees(conference: Conference, fee_ids: Iterable) -> int:
    """Set ``display_order`` to each fee's position in ``fee_ids``. Last writer wins."""
    updated = 0
    for position, fee_id in enumerate(fee_ids):
        updated += CustomRegistrationFee.objects.filter(
            id=fee_id,
            conference=conference,
        ).update(display_order=position, updated_at=timezone.now())
    return updated


def get_fees_for_admin(conference: Conference):
    return list(conference.registration_fees.all())


def get_fee_usage(conference: Conference) -> Dict[str, int]:
    """``{fee_id: registrations currently holding a slot}``, zero for unused fees."""
    counts = slot_counts(conference)
    return {
        str(fee_id): counts.get(str(fee_id), 0)
        for fee_id in conference.registration_fees.values_list('id', flat=True)
    }


def quote_registration(conference: Conference, now, fee_id=None, is_student: bool = False) -> Quote:
    """
    Price for a registrant at ``now``.

    With custom fees a fee must be chosen and be ``active``. Without them
    the legacy tier schedule decides. Raises ``NoActiveTier`` when nothing
    can be bought.
    """
    fees = list(conference.registration_fees.all())

    if fee_id is not None:
        fee = next((candidate for candidate in fees if str(candidate.id) == str(fee_id)), None)
        if fee is None:
            raise FeeNotFound(fee_id=str(fee_id))
        status = fee_status(fee, now)
        if status != STATUS_ACTIVE:
            raise FeeUnavailable(status=status, fee_id=str(fee.id))
        return Quote(
            fee=fee,
            fee_name=fee.name,
            price_net=fee.price_net,
            price_gross=fee.price_gross,
            vat_percentage=fee.vat_percentage,
            currency=fee.currency,
        )

    if fees:
        if not any(fee_status(fee, now) == STATUS_ACTIVE for fee in fees):
            raise NoActiveTier()
        raise FeeUnavailable('A registration fee must be chosen')

    pricing = conference.pricing_config
    current = get_current_pricing(pricing, now, conference.start_date)
    tier = current.tier
    breakdown = current.participant_breakdown
    if is_student and pricing.has_student_price(tier):
        tier = student_tier(tier)
        breakdown = current.student_breakdown

    return Quote(
        pricing_tier=tier,
        fee_name=tier_display_name(tier),
        price_net=breakdown.without_vat,
        price_gross=breakdown.with_vat,
        vat_percentage=breakdown.vat_percentage,
        currency=current.currency,
    )


def submit_registration(
    conference: Conference,
    participant: Mapping[str, Any],
    now=None,
    fee_id=None,
    is_student: bool = False,
) -> Registration:
    """
    Lock in the quoted price and, for a capacity-limited fee, claim a slot
    in the same transaction as the insert. ``CapacityExceeded`` propagates
    to the caller unchanged.
    """
    now = now or timezone.now()
    quote = quote_registration(conference, now, fee_id=fee_id, is_student=is_student)

    with transaction.atomic():
        if quote.fee is not None:
            claim_fee_slot(quote.fee.id)
        registration = Registration.objects.create(
            conference=conference,
            registration_fee=quote.fee,
            pricing_tier=quote.pricing_tier,
            first_name=participant['first_name'],
            last_name=participant['last_name'],
            email=participant['email'],
            is_student=is_student,
            fee_name=quote.fee_name,
            price_net=quote.price_net,
            price_gross=quote.price_gross,
            vat_percentage=quote.vat_percentage,
            currency=quote.currency,
            holds_fee_slot=quote.fee is not None,
        )

    logger.info(
        f"[REGISTRATION] {registration.id} created for conference {conference.id}: "
        f"{quote.fee_name} {quote.price_gross} {quote.currency}"
    )
    return registration


def cancel_registration(registration: Registration, now=None) -> Registration:
    """Cancel and give the fee slot back. Cancelling twice releases once."""
    with transaction.atomic():
        locked = Registration.objects.select_for_update().get(pk=registration.pk)
        if locked.is_cancelled:
            return locked

        locked.status = Registration.STATUS_CANCELLED
        locked.cancelled_at = now or timezone.now()
        if locked.holds_fee_slot:
            if locked.registration_fee_id is not None:
                release_fee_slot(locked.registration_fee_id)
            locked.holds_fee_slot = False
        locked.save(update_fields=['status', 'cancelled_at', 'holds_fee_slot', 'updated_at'])

    logger.info(f"[REGISTRATION] {locked.id} cancelled")
    return locked
