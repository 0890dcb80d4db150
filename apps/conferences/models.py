"""Models for the conferences app."""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from apps.conferences.exceptions import InvalidDateRange, PricingError
from apps.conferences.fees import as_day, capacity_remaining, fee_status
from apps.conferences.tiers import ConferencePricing, DEFAULT_CURRENCY
from apps.conferences.vat import effective_vat, price_with_vat, quantize_money, to_decimal


class Conference(BaseModel):
    """A conference with its pricing configuration."""

    name = models.CharField(_("name"), max_length=255)
    slug = models.SlugField(_("slug"), max_length=255, unique=True, blank=True)
    start_date = models.DateField(_("start date"), null=True, blank=True)
    end_date = models.DateField(_("end date"), null=True, blank=True)
    currency = models.CharField(_("currency"), max_length=3, default=DEFAULT_CURRENCY)
    pricing = models.JSONField(
        _("pricing"),
        default=dict,
        blank=True,
        help_text=_("Tier schedule, VAT settings, student and accompanying person prices")
    )
    is_published = models.BooleanField(_("is published"), default=False)

    class Meta:
        verbose_name = _("conference")
        verbose_name_plural = _("conferences")
        ordering = ['-start_date', 'name']

    def __str__(self):
        return self.name

    @property
    def pricing_config(self) -> ConferencePricing:
        data = dict(self.pricing or {})
        data.setdefault('currency', self.currency)
        data['vat_percentage'] = effective_vat(
            data.get('vat_percentage'),
            getattr(settings, 'DEFAULT_VAT_PERCENTAGE', None)
        )
        return ConferencePricing.from_dict(data)

    @property
    def vat_percentage(self):
        return self.pricing_config.vat_percentage

    def clean(self):
        super().clean()
        try:
            self.pricing_config
        except PricingError as exc:
            raise ValidationError({'pricing': exc.message})

    def save(self, *args, **kwargs):
        """Refuse to store a pricing document the engine cannot parse."""
        update_fields = kwargs.get('update_fields')
        if update_fields is None or 'pricing' in update_fields:
            self.pricing_config
        super().save(*args, **kwargs)


def validate_fee_window(valid_from, valid_to):
    """Raise ``InvalidDateRange`` unless ``valid_from <= valid_to``."""
    if valid_from is None or valid_to is None:
        raise InvalidDateRange('Valid from and valid to are required')
    try:
        start, end = as_day(valid_from), as_day(valid_to)
    except ValueError:
        raise InvalidDateRange('Valid from and valid to must be dates in YYYY-MM-DD format')
    if end < start:
        raise InvalidDateRange(valid_from=str(start), valid_to=str(end))
    return start, end


class CustomRegistrationFee(BaseModel):
    """
    🚀 ENTERPRISE: Named registration fee with its own price, VAT rate,
    validity window and optional capacity.

    ``price_gross`` is always derived from ``price_net`` and
    ``vat_percentage`` on save. ``sold_count`` is only changed through
    ``apps.conferences.capacity``.
    """

    conference = models.ForeignKey(
        Conference,
        on_delete=models.CASCADE,
        related_name='registration_fees',
        verbose_name=_("conference")
    )
    name = models.CharField(_("name"), max_length=255)
    description = models.TextField(_("description"), blank=True)
    price_net = models.DecimalField(
        _("net price"),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    vat_percentage = models.DecimalField(
        _("VAT percentage"),
        max_digits=5,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    price_gross = models.DecimalField(_("gross price"), max_digits=10, decimal_places=2, editable=False)
    valid_from = models.DateField(_("valid from"))
    valid_to = models.DateField(_("valid to"))
    is_active = models.BooleanField(_("is active"), default=True)
    capacity = models.PositiveIntegerField(
        _("capacity"),
        null=True,
        blank=True,
        help_text=_("Leave empty for unlimited capacity")
    )
    sold_count = models.PositiveIntegerField(_("sold count"), default=0)
    currency = models.CharField(_("currency"), max_length=3, default=DEFAULT_CURRENCY)
    display_order = models.IntegerField(_("display order"), default=0)

    class Meta:
        verbose_name = _("custom registration fee")
        verbose_name_plural = _("custom registration fees")
        ordering = ['display_order', 'created_at']
        indexes = [
            models.Index(fields=['conference', 'display_order'], name='conf_fee_order_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(valid_to__gte=models.F('valid_from')),
                name='%(app_label)s_%(class)s_valid_window'
            ),
            models.CheckConstraint(
                condition=models.Q(capacity__isnull=True) | models.Q(sold_count__lte=models.F('capacity')),
                name='%(app_label)s_%(class)s_sold_within_capacity'
            ),
        ]

    def __str__(self):
        return f"{self.name} - {self.conference.name}"

    def save(self, *args, **kwargs):
        """Validate the window and re-derive the gross price before writing."""
        self.valid_from, self.valid_to = validate_fee_window(self.valid_from, self.valid_to)
        self.price_net = quantize_money(to_decimal(self.price_net))
        self.vat_percentage = to_decimal(self.vat_percentage or 0)
        self.price_gross = price_with_vat(self.price_net, self.vat_percentage)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and {'price_net', 'vat_percentage'} & set(update_fields):
            kwargs['update_fields'] = set(update_fields) | {'price_gross'}
        super().save(*args, **kwargs)

    def status(self, today):
        return fee_status(self, today)

    @property
    def capacity_remaining(self):
        return capacity_remaining(self)


class Registration(BaseModel):
    """
    A participant's registration, holding the price snapshot taken at
    submission time. Later fee edits never touch these amounts.
    """

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PAID = 'paid'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_PENDING, _('Pending')),
        (STATUS_CONFIRMED, _('Confirmed')),
        (STATUS_PAID, _('Paid')),
        (STATUS_CANCELLED, _('Cancelled')),
    )

    conference = models.ForeignKey(
        Conference,
        on_delete=models.CASCADE,
        related_name='registrations',
        verbose_name=_("conference")
    )
    registration_fee = models.ForeignKey(
        CustomRegistrationFee,
        on_delete=models.SET_NULL,
        related_name='registrations',
        verbose_name=_("registration fee"),
        null=True,
        blank=True
    )
    pricing_tier = models.CharField(
        _("pricing tier"),
        max_length=32,
        blank=True,
        help_text=_("Legacy tier key (e.g. early_bird, student_regular) when no custom fee was used")
    )
    first_name = models.CharField(_("first name"), max_length=100)
    last_name = models.CharField(_("last name"), max_length=100)
    email = models.EmailField(_("email"))
    is_student = models.BooleanField(_("is student"), default=False)
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )

    # Snapshot at submission time
    fee_name = models.CharField(_("fee name"), max_length=255)
    price_net = models.DecimalField(_("net price"), max_digits=10, decimal_places=2)
    price_gross = models.DecimalField(_("gross price"), max_digits=10, decimal_places=2)
    vat_percentage = models.DecimalField(_("VAT percentage"), max_digits=5, decimal_places=2, default=Decimal('0'))
    currency = models.CharField(_("currency"), max_length=3, default=DEFAULT_CURRENCY)
    holds_fee_slot = models.BooleanField(
        _("holds fee slot"),
        default=False,
        help_text=_("Whether this registration currently counts against the fee's capacity")
    )
    cancelled_at = models.DateTimeField(_("cancelled at"), null=True, blank=True)

    class Meta:
        verbose_name = _("registration")
        verbose_name_plural = _("registrations")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['conference', 'status'], name='conf_reg_status_idx'),
            models.Index(fields=['registration_fee', 'holds_fee_slot'], name='conf_reg_fee_slot_idx'),
        ]

    def __str__(self):
        return f"{self.first_name} {self.last_name} - {self.fee_name} ({self.conference.name})"

    @property
    def vat_amount(self):
        return self.price_gross - self.price_net

    @property
    def is_cancelled(self):
        return self.status == self.STATUS_CANCELLED
