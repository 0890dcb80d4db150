"""
Pricing schemes: legacy tiers and custom fees behind one interface.

Either scheme answers ``fee_options(now, conference_start)`` with the
same ``FeeOption`` list, so the registration form does not care which
one a conference uses.
"""

from typing import List, Optional

from apps.conferences.fees import FeeOption, resolve_active_fee_types
from apps.conferences.tiers import (
    ConferencePricing,
    TIER_ORDER,
    resolve_active_tier,
    student_tier,
    tier_display_name,
    tier_status,
)


class PricingScheme:
    """Common interface of the two pricing modes."""

    kind = None

    def fee_options(self, now, conference_start=None) -> List[FeeOption]:
        raise NotImplementedError("Subclasses must implement fee_options")


class LegacyTierScheme(PricingScheme):
    """Early bird / regular / late schedule from ``Conference.pricing``."""

    kind = 'tiers'

    def __init__(self, pricing: ConferencePricing, currency: Optional[str] = None):
        self.pricing = pricing
        self.currency = (currency or pricing.currency).upper()

    def _option(self, key, amount, now, active_tier):
        breakdown = self.pricing.breakdown(amount)
        return FeeOption(
            id=key,
            name=tier_display_name(key),
            net=breakdown.without_vat,
            gross=breakdown.with_vat,
            vat_percentage=breakdown.vat_percentage,
            currency=self.currency,
            status=tier_status(self.pricing, key, now, active_tier),
        )

    def fee_options(self, now, conference_start=None) -> List[FeeOption]:
        active_tier = resolve_active_tier(self.pricing, now, conference_start)
        options = []
        for key in TIER_ORDER:
            if self.pricing.tier(key) is None:
                continue
            options.append(
                self._option(key, self.pricing.participant_price(key, self.currency), now, active_tier)
            )
            if self.pricing.has_student_price(key):
                options.append(
                    self._option(
                        student_tier(key),
                        self.pricing.student_price(key, self.currency),
                        now,
                        active_tier,
                    )
                )
        return options


class CustomFeeScheme(PricingScheme):
    """Named fees with their own windows and capacities."""

    kind = 'custom_fees'

    def __init__(self, fees):
        self.fees = list(fees)

    def fee_options(self, now, conference_start=None) -> List[FeeOption]:
        return resolve_active_fee_types(self.fees, now)


def pricing_scheme_for(conference) -> PricingScheme:
    """Custom fees dominate as soon as the conference has any."""
    fees = list(conference.registration_fees.all())
    if fees:
        return CustomFeeScheme(fees)
    return LegacyTierScheme(conference.pricing_config)
