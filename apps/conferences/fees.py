"""
Custom registration fee availability.

A fee's status is derived on every read from ``is_active``, its validity
window, ``capacity`` and ``sold_count``; it is never stored.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date

STATUS_ACTIVE = 'active'
STATUS_NOT_YET = 'not_yet'
STATUS_EXPIRED = 'expired'
STATUS_SOLD_OUT = 'sold_out'
STATUS_INACTIVE = 'inactive'

FEE_STATUSES = (
    STATUS_ACTIVE,
    STATUS_NOT_YET,
    STATUS_EXPIRED,
    STATUS_SOLD_OUT,
    STATUS_INACTIVE,
)

STATUS_LABELS = {
    STATUS_ACTIVE: 'Available',
    STATUS_NOT_YET: 'Not available yet',
    STATUS_EXPIRED: 'Expired',
    STATUS_SOLD_OUT: 'Sold out',
    STATUS_INACTIVE: 'Inactive',
}


@dataclass(frozen=True)
class FeeOption:
    """One selectable (or explained-as-disabled) fee on the registration form."""

    id: str
    name: str
    net: Decimal
    gross: Decimal
    vat_percentage: Decimal
    currency: str
    status: str
    sold_count: int = 0
    capacity: Optional[int] = None
    capacity_remaining: Optional[int] = None
    description: str = ''

    @property
    def is_available(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    def as_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'net': self.net,
            'gross': self.gross,
            'vat_percentage': self.vat_percentage,
            'currency': self.currency,
            'status': self.status,
            'status_label': self.status_label,
            'is_available': self.is_available,
            'sold_count': self.sold_count,
            'capacity': self.capacity,
            'capacity_remaining': self.capacity_remaining,
        }


def as_day(value: Any) -> date:
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localtime(value).date()
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f'Invalid date: {value!r}')
    return parsed


def is_sold_out(capacity: Optional[int], sold_count: int) -> bool:
    """Capacity set and fully used. ``None`` means unlimited."""
    if capacity is None:
        return False
    return (sold_count or 0) >= capacity


def is_in_validity_window(valid_from: Any, valid_to: Any, today: Any) -> bool:
    day = as_day(today)
    return as_day(valid_from) <= day <= as_day(valid_to)


def capacity_remaining(fee) -> Optional[int]:
    if fee.capacity is None:
        return None
    return max(0, fee.capacity - (fee.sold_count or 0))


def fee_status(fee, today: Any) -> str:
    """
    Derive the fee status. Checked in order, so an inactive fee reports
    ``inactive`` even when it is also sold out, and a fee past its window
    reports ``expired`` whatever its sold count.
    """
    if not fee.is_active:
        return STATUS_INACTIVE
    day = as_day(today)
    if day > as_day(fee.valid_to):
        return STATUS_EXPIRED
    if is_sold_out(fee.capacity, fee.sold_count):
        return STATUS_SOLD_OUT
    if day < as_day(fee.valid_from):
        return STATUS_NOT_YET
    return STATUS_ACTIVE


def fee_option(fee, today: Any) -> FeeOption:
    return FeeOption(
        id=str(fee.id),
        name=fee.name,
        description=getattr(fee, 'description', '') or '',
        net=fee.price_net,
        gross=fee.price_gross,
        vat_percentage=fee.vat_percentage,
        currency=fee.currency,
        status=fee_status(fee, today),
        sold_count=fee.sold_count or 0,
        capacity=fee.capacity,
        capacity_remaining=capacity_remaining(fee),
    )


def resolve_active_fee_types(fees: Iterable, today: Any) -> List[FeeOption]:
    """
    All fees, ordered by ``display_order``, each annotated with its status.
    Fees that cannot be selected are kept so the form can say why.
    """
    ordered = sorted(fees, key=lambda fee: getattr(fee, 'display_order', 0) or 0)
    return [fee_option(fee, today) for fee in ordered]
