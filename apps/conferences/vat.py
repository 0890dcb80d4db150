"""
🚀 ENTERPRISE: Money and VAT math for conference pricing.

Every amount is handled as ``Decimal``. Rounding happens once, on the
final result, to two places with ROUND_HALF_UP. Intermediate values are
never rounded, so ``price_with_vat`` and ``price_without_vat`` round-trip
within one cent.

Usage:
    from apps.conferences.vat import price_breakdown

    breakdown = price_breakdown(125, 25, amount_is_gross=True)
    breakdown.without_vat  # Decimal('100.00')
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple, Union

from apps.conferences.exceptions import InvalidAmount, InvalidVatPercentage

CENT = Decimal('0.01')
HUNDRED = Decimal('100')

Number = Union[int, float, str, Decimal]

CURRENCY_SYMBOLS = {
    'EUR': '€',
    'USD': '$',
    'GBP': '£',
    'CHF': 'CHF',
    'HRK': 'kn',
    'JPY': '¥',
    'CAD': 'C$',
    'AUD': 'A$',
}

# Symbols written before the amount; everything else goes after it.
PREFIX_SYMBOL_CURRENCIES = {'USD', 'GBP', 'JPY', 'CAD', 'AUD'}


@dataclass(frozen=True)
class PriceBreakdown:
    """Net, gross and VAT share of one price."""

    with_vat: Decimal
    without_vat: Decimal
    vat_amount: Decimal
    vat_percentage: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            'with_vat': self.with_vat,
            'without_vat': self.without_vat,
            'vat_amount': self.vat_amount,
            'vat_percentage': self.vat_percentage,
        }


def to_decimal(value: Any) -> Decimal:
    """Convert ``value`` to Decimal, rejecting anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        raise InvalidAmount(value=value)
    if isinstance(value, float):
        # str() keeps the short repr, so 0.1 becomes Decimal('0.1')
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(value=value)
    if not amount.is_finite():
        raise InvalidAmount(value=value)
    return amount


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _amount(value: Any) -> Decimal:
    amount = to_decimal(value)
    if amount < 0:
        raise InvalidAmount(value=value)
    return amount


def _rate(vat_percentage: Optional[Number]) -> Decimal:
    if vat_percentage is None or vat_percentage == '':
        return Decimal('0')
    try:
        rate = to_decimal(vat_percentage)
    except InvalidAmount:
        raise InvalidVatPercentage(vat_percentage=vat_percentage)
    if rate < 0 or rate > HUNDRED:
        raise InvalidVatPercentage(vat_percentage=vat_percentage)
    return rate


def price_with_vat(net: Number, vat_percentage: Optional[Number] = None) -> Decimal:
    """Gross amount for a net amount: ``net * (1 + vat/100)``."""
    amount = _amount(net)
    rate = _rate(vat_percentage)
    return quantize_money(amount * (1 + rate / HUNDRED))


def price_without_vat(gross: Number, vat_percentage: Optional[Number] = None) -> Decimal:
    """Net amount for a gross amount: ``gross / (1 + vat/100)``."""
    amount = _amount(gross)
    rate = _rate(vat_percentage)
    return quantize_money(amount / (1 + rate / HUNDRED))


def price_breakdown(
    amount: Number,
    vat_percentage: Optional[Number] = None,
    amount_is_gross: bool = False,
) -> PriceBreakdown:
    """
    Derive gross, net and VAT share from one known amount.

    ``vat_amount`` is the difference of the two rounded sides, so
    ``with_vat - without_vat == vat_amount`` holds exactly.
    """
    rate = _rate(vat_percentage)
    if amount_is_gross:
        with_vat = quantize_money(_amount(amount))
        without_vat = price_without_vat(amount, rate)
    else:
        without_vat = quantize_money(_amount(amount))
        with_vat = price_with_vat(amount, rate)
    return PriceBreakdown(
        with_vat=with_vat,
        without_vat=without_vat,
        vat_amount=with_vat - without_vat,
        vat_percentage=rate,
    )


def vat_amount(net: Number, vat_percentage: Optional[Number] = None) -> Decimal:
    return price_breakdown(net, vat_percentage).vat_amount


def effective_vat(
    conference_vat: Optional[Number],
    default_vat: Optional[Number] = None,
) -> Optional[Decimal]:
    """
    VAT rate to apply: the conference rate when set, otherwise the
    account-wide default, otherwise ``None`` (no VAT shown at all).
    """
    if conference_vat is not None and conference_vat != '':
        return _rate(conference_vat)
    if default_vat is not None and default_vat != '':
        return _rate(default_vat)
    return None


def fee_prices(
    amount: Number,
    vat_percentage: Optional[Number] = None,
    amount_is_gross: bool = False,
) -> Tuple[Decimal, Decimal]:
    """
    Net and gross to persist on a custom fee.

    When the admin types a gross amount the net side is derived first and
    the gross is then recomputed from it, so the stored pair always
    satisfies ``gross == price_with_vat(net, vat)``.
    """
    if amount_is_gross:
        net = price_without_vat(amount, vat_percentage)
    else:
        net = quantize_money(_amount(amount))
    return net, price_with_vat(net, vat_percentage)


def format_price_without_zeros(amount: Number) -> str:
    """``100`` for whole amounts, two decimals otherwise (``99.50``)."""
    value = quantize_money(to_decimal(amount))
    if value == value.to_integral_value():
        return f'{value:.0f}'
    return f'{value:.2f}'


def format_price(amount: Number, currency: str) -> str:
    return f'{format_price_without_zeros(amount)} {currency.upper()}'


def currency_symbol(currency: str) -> str:
    """Display symbol for a currency code; unknown codes are returned as-is."""
    return CURRENCY_SYMBOLS.get((currency or '').upper(), currency)


def format_price_with_symbol(amount: Number, currency: str) -> str:
    code = (currency or '').upper()
    symbol = currency_symbol(code)
    formatted = format_price_without_zeros(amount)
    if code in PREFIX_SYMBOL_CURRENCIES:
        return f'{symbol}{formatted}'
    return f'{formatted} {symbol}'
