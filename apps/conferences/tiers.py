"""
Legacy tiered pricing: early bird / regular / late.

The conference keeps its schedule as a JSON document on
``Conference.pricing``. ``ConferencePricing.from_dict`` parses it and
``resolve_active_tier`` decides which tier applies at a given moment.
Nothing here reads the clock: ``now`` is always an argument.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.conferences.exceptions import InvalidAmount, InvalidPricingSchedule, NoActiveTier
from apps.conferences.vat import PriceBreakdown, price_breakdown, to_decimal

EARLY_BIRD = 'early_bird'
REGULAR = 'regular'
LATE = 'late'

# Evaluation order; also the order tiers appear in the schedule.
TIER_ORDER = (EARLY_BIRD, REGULAR, LATE)

STUDENT_PREFIX = 'student_'

TIER_DISPLAY_NAMES = {
    EARLY_BIRD: 'Early Bird',
    REGULAR: 'Regular',
    LATE: 'Late Registration',
}

DEFAULT_CURRENCY = 'EUR'

Moment = Union[date, datetime]
Amount = Union[int, float, str, Decimal, Mapping[str, Any], None]


def price_amount(value: Amount, currency: Optional[str] = None) -> Decimal:
    """
    Resolve a configured amount that may be a single number or a
    per-currency mapping such as ``{"EUR": 150, "USD": 170}``.

    Unknown currencies fall back to the first configured value; a missing
    amount counts as 0.
    """
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Mapping):
        if not value:
            return Decimal('0')
        if currency and currency.upper() in value:
            return price_amount(value[currency.upper()])
        return price_amount(next(iter(value.values())))
    amount = to_decimal(value)
    if amount < 0:
        raise InvalidAmount(value=value)
    return amount


def parse_moment(value: Any, field: str = '') -> Optional[Moment]:
    """Parse a schedule bound. Date-only strings stay dates (whole-day bounds).

    Malformed or impossible dates (``2025-02-30``) raise ``InvalidPricingSchedule``.
    """
    if value in (None, ''):
        return None
    if isinstance(value, (date, datetime)):
        return value
    try:
        parsed = parse_date(value)
        if parsed is None:
            parsed = parse_datetime(value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None:
        raise InvalidPricingSchedule(
            f'Invalid date in pricing schedule: {value!r}', field=field, value=value,
        )
    return parsed


def _as_date(moment: Moment) -> date:
    if isinstance(moment, datetime):
        if timezone.is_aware(moment):
            return timezone.localtime(moment).date()
        return moment.date()
    return moment


def _as_datetime(moment: Moment, like: datetime) -> datetime:
    if not isinstance(moment, datetime):
        moment = datetime.combine(moment, time.min)
    if timezone.is_aware(like) and timezone.is_naive(moment):
        return timezone.make_aware(moment)
    if timezone.is_naive(like) and timezone.is_aware(moment):
        return timezone.make_naive(moment)
    return moment


def _compare(now: Moment, bound: Moment) -> int:
    """-1, 0, 1 as ``now`` is before, on, after ``bound``."""
    if isinstance(bound, datetime):
        left, right = _as_datetime(now, bound), bound
    else:
        left, right = _as_date(now), bound
    return (left > right) - (left < right)


@dataclass(frozen=True)
class TierWindow:
    """One legacy tier: an amount plus an inclusive validity window."""

    key: str
    amount: Amount = None
    start: Optional[Moment] = None
    end: Optional[Moment] = None

    @classmethod
    def from_dict(cls, key: str, data: Optional[Mapping[str, Any]]) -> Optional['TierWindow']:
        if not data or data.get('amount') is None:
            return None
        end = data.get('deadline') if key == EARLY_BIRD else data.get('end_date')
        if end in (None, ''):
            end = data.get('end_date') or data.get('deadline')
        return cls(
            key=key,
            amount=data.get('amount'),
            start=parse_moment(data.get('start_date'), f'{key}.start_date'),
            end=parse_moment(end, f'{key}.end_date'),
        )

    def has_started(self, now: Moment) -> bool:
        return self.start is None or _compare(now, self.start) >= 0

    def has_ended(self, now: Moment) -> bool:
        return self.end is not None and _compare(now, self.end) > 0

    def contains(self, now: Moment) -> bool:
        return self.has_started(now) and not self.has_ended(now)


@dataclass(frozen=True)
class ConferencePricing:
    """Parsed ``Conference.pricing`` document."""

    currency: str = DEFAULT_CURRENCY
    vat_percentage: Optional[Decimal] = None
    prices_include_vat: bool = False
    early_bird: Optional[TierWindow] = None
    regular: Optional[TierWindow] = None
    late: Optional[TierWindow] = None
    student: Dict[str, Amount] = field(default_factory=dict)
    student_discount: Amount = None
    accompanying_person_price: Amount = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ConferencePricing':
        data = data or {}
        vat = data.get('vat_percentage')
        return cls(
            currency=(data.get('currency') or DEFAULT_CURRENCY).upper(),
            vat_percentage=None if vat in (None, '') else to_decimal(vat),
            prices_include_vat=bool(data.get('prices_include_vat')),
            early_bird=TierWindow.from_dict(EARLY_BIRD, data.get(EARLY_BIRD)),
            regular=TierWindow.from_dict(REGULAR, data.get(REGULAR)),
            late=TierWindow.from_dict(LATE, data.get(LATE)),
            student=dict(data.get('student') or {}),
            student_discount=data.get('student_discount'),
            accompanying_person_price=data.get('accompanying_person_price'),
        )

    def tier(self, key: str) -> Optional[TierWindow]:
        return getattr(self, base_tier(key), None)

    @property
    def configured_tiers(self) -> List[TierWindow]:
        return [tier for tier in (self.early_bird, self.regular, self.late) if tier is not None]

    def regular_window(self) -> Optional[TierWindow]:
        """Regular tier; an open end is closed by the late tier's start."""
        regular = self.regular
        if regular is None or regular.end is not None:
            return regular
        if self.late is not None and self.late.start is not None:
            late_start = self.late.start
            if isinstance(late_start, datetime):
                end = late_start - timedelta(microseconds=1)
            else:
                end = late_start - timedelta(days=1)
            return TierWindow(key=REGULAR, amount=regular.amount, start=regular.start, end=end)
        return regular

    def participant_price(self, key: str, currency: Optional[str] = None) -> Decimal:
        tier = self.tier(key)
        return price_amount(tier.amount if tier else None, currency or self.currency)

    def has_student_price(self, key: str) -> bool:
        """Whether tier ``key`` has a student price of its own (table entry or discount)."""
        key = base_tier(key)
        if self.student.get(key) is not None:
            return True
        return self.student_discount not in (None, '') and self.participant_price(key) > 0

    def student_price(self, key: str, currency: Optional[str] = None) -> Decimal:
        """Fixed student table when configured, else participant price minus discount.

        A tier without a student entry or discount costs students the participant
        price. Only an explicit ``0`` in the student table makes it free.
        """
        currency = currency or self.currency
        key = base_tier(key)
        if self.student.get(key) is not None:
            return price_amount(self.student[key], currency)
        participant = self.participant_price(key, currency)
        if participant > 0 and self.student_discount not in (None, ''):
            return max(Decimal('0'), participant - price_amount(self.student_discount, currency))
        return participant

    def breakdown(self, amount: Amount) -> PriceBreakdown:
        """Net/gross split of a configured amount under the conference VAT settings."""
        return price_breakdown(amount, self.vat_percentage, amount_is_gross=self.prices_include_vat)


@dataclass(frozen=True)
class CurrentPricing:
    tier: str
    participant_price: Decimal
    student_price: Decimal
    accompanying_person_price: Decimal
    currency: str
    participant_breakdown: PriceBreakdown
    student_breakdown: PriceBreakdown
    deadline: Optional[Moment] = None
    next_tier: Optional[str] = None
    next_tier_date: Optional[Moment] = None


def base_tier(key: str) -> str:
    """``student_regular`` -> ``regular``."""
    if key.startswith(STUDENT_PREFIX):
        return key[len(STUDENT_PREFIX):]
    return key


def student_tier(key: str) -> str:
    return f'{STUDENT_PREFIX}{base_tier(key)}'


def tier_display_name(key: str) -> str:
    name = TIER_DISPLAY_NAMES.get(base_tier(key), 'Standard')
    if key.startswith(STUDENT_PREFIX):
        return f'Student {name}'
    return name


def _windows(pricing: ConferencePricing) -> List[TierWindow]:
    windows = [pricing.early_bird, pricing.regular_window(), pricing.late]
    return [window for window in windows if window is not None]


def resolve_active_tier(
    pricing: ConferencePricing,
    now: Moment,
    conference_start: Optional[Moment] = None,
) -> Optional[str]:
    """
    Tier key purchasable at ``now`` or ``None`` when registration is closed.

    First match wins: early bird (needs a deadline), regular, late. When no
    window matches and the conference has already started, late is used if
    configured, else the last configured tier.
    """
    early_bird = pricing.early_bird
    if early_bird is not None and early_bird.end is not None and early_bird.contains(now):
        return EARLY_BIRD

    regular = pricing.regular_window()
    if regular is not None and regular.contains(now):
        return REGULAR

    late = pricing.late
    if late is not None and late.contains(now):
        return LATE

    if conference_start is not None and _compare(now, conference_start) > 0:
        if late is not None:
            return LATE
        configured = pricing.configured_tiers
        if configured:
            return configured[-1].key
    return None


def tier_status(
    pricing: ConferencePricing,
    key: str,
    now: Moment,
    active_tier: Optional[str],
) -> str:
    """Status of one legacy tier relative to the resolved ``active_tier``."""
    if active_tier is not None and base_tier(key) == active_tier:
        return 'active'
    window = {w.key: w for w in _windows(pricing)}.get(base_tier(key))
    if window is None:
        return 'inactive'
    if window.has_ended(now):
        return 'expired'
    if not window.has_started(now):
        return 'not_yet'
    return 'inactive'


def get_current_pricing(
    pricing: ConferencePricing,
    now: Moment,
    conference_start: Optional[Moment] = None,
    currency: Optional[str] = None,
) -> CurrentPricing:
    """Prices of the tier active at ``now``; raises ``NoActiveTier`` when closed."""
    tier = resolve_active_tier(pricing, now, conference_start)
    if tier is None:
        raise NoActiveTier()

    currency = (currency or pricing.currency).upper()
    participant = pricing.participant_price(tier, currency)
    student = pricing.student_price(tier, currency)
    window = pricing.tier(tier)

    next_tier = None
    next_tier_date = None
    index = TIER_ORDER.index(tier)
    for candidate in TIER_ORDER[index + 1:]:
        following = pricing.tier(candidate)
        if following is not None:
            next_tier = candidate
            next_tier_date = following.start
            break

    return CurrentPricing(
        tier=tier,
        participant_price=participant,
        student_price=student,
        accompanying_person_price=price_amount(pricing.accompanying_person_price, currency),
        currency=currency,
        participant_breakdown=pricing.breakdown(participant),
        student_breakdown=pricing.breakdown(student),
        deadline=window.end if window else None,
        next_tier=next_tier,
        next_tier_date=next_tier_date,
    )
