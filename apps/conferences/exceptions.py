"""Business-rule errors raised by the pricing engine.

None of these are transient: the caller decides what to show the user,
the engine never retries them.
"""


class PricingError(Exception):
    """Base class for pricing engine failures."""

    code = 'pricing_error'
    default_message = 'Pricing error'

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class InvalidAmount(PricingError):
    """Negative, missing or non-numeric amount."""

    code = 'invalid_amount'
    default_message = 'Amount must be a number greater than or equal to 0'


class InvalidVatPercentage(PricingError):
    code = 'invalid_vat_percentage'
    default_message = 'VAT percentage must be between 0 and 100'


class InvalidDateRange(PricingError):
    """valid_to lies before valid_from."""

    code = 'invalid_date_range'
    default_message = 'Valid to must be on or after valid from'


class InvalidPricingSchedule(PricingError):
    """A tier bound in the conference pricing document is not a real date."""

    code = 'invalid_pricing_schedule'
    default_message = 'Conference pricing contains an invalid date'


class CapacityExceeded(PricingError):
    """No slot left on a capacity-limited fee."""

    code = 'capacity_exceeded'
    default_message = 'This fee is sold out, please choose another'


class NoActiveTier(PricingError):
    """Nothing is purchasable right now."""

    code = 'registration_closed'
    default_message = 'Registration is currently closed'


class FeeUnavailable(PricingError):
    """The chosen fee exists but its status is not ``active``."""

    code = 'fee_unavailable'
    default_message = 'This fee cannot be selected right now'

    def __init__(self, message=None, status=None, **context):
        self.status = status
        super().__init__(message, status=status, **context)


class FeeNotFound(PricingError):
    code = 'fee_not_found'
    default_message = 'Registration fee not found'


class InvalidCapacity(PricingError):
    """Negative capacity, or a capacity below the slots already sold."""

    code = 'invalid_capacity'
    default_message = 'Capacity cannot be lower than the number of registrations already sold'
