"""Serializers for the conference pricing API."""

from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from apps.conferences.fees import FEE_STATUSES, STATUS_LABELS, fee_status
from apps.conferences.models import Conference, CustomRegistrationFee, Registration
from apps.conferences.vat import format_price_with_symbol


class CustomRegistrationFeeSerializer(serializers.ModelSerializer):
    """
    🚀 ENTERPRISE: Admin view of a custom fee: net + gross, sold count, live status.
    """
    status = serializers.SerializerMethodField()
    is_sold_out = serializers.SerializerMethodField()
    capacity_remaining = serializers.ReadOnlyField()

    class Meta:
        model = CustomRegistrationFee
        fields = [
            'id', 'name', 'description', 'price_net', 'vat_percentage', 'price_gross',
            'valid_from', 'valid_to', 'is_active', 'capacity', 'sold_count',
            'capacity_remaining', 'is_sold_out', 'status', 'currency', 'display_order',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def _today(self):
        return self.context.get('today') or timezone.localdate()

    def get_status(self, obj) -> str:
        return fee_status(obj, self._today())

    def get_is_sold_out(self, obj) -> bool:
        return obj.capacity is not None and obj.sold_count >= obj.capacity


class RegistrationFeeWriteSerializer(serializers.Serializer):
    """
    Admin input for creating or editing a fee. The typed amount is net
    unless ``prices_include_vat`` is true; gross is always derived.
    """
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    valid_from = serializers.DateField(input_formats=['%Y-%m-%d'])
    valid_to = serializers.DateField(input_formats=['%Y-%m-%d'])
    is_active = serializers.BooleanField(required=False, default=True)
    price_net = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    price_gross = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    prices_include_vat = serializers.BooleanField(required=False, allow_null=True, default=None)
    vat_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('100'),
        required=False,
        allow_null=True
    )
    capacity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    display_order = serializers.IntegerField(required=False)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required")
        return value.strip()

    def validate(self, attrs):
        valid_from = attrs.get('valid_from', getattr(self.instance, 'valid_from', None))
        valid_to = attrs.get('valid_to', getattr(self.instance, 'valid_to', None))
        if valid_from and valid_to and valid_to < valid_from:
            raise serializers.ValidationError({'valid_to': "Valid to must be on or after valid from"})
        if not self.partial and attrs.get('price_net') is None and attrs.get('price_gross') is None:
            raise serializers.ValidationError({'price_net': "A net or gross price is required"})
        for field in ('price_net', 'price_gross'):
            if attrs.get(field) is not None and attrs[field] < 0:
                raise serializers.ValidationError({field: "Amount must be greater than or equal to 0"})
        return attrs


class ReorderFeesSerializer(serializers.Serializer):
    fee_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class PricePreviewSerializer(serializers.Serializer):
    """Live gross/net preview while an admin types a price."""
    amount = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=Decimal('0'))
    vat_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('100'),
        required=False,
        allow_null=True
    )
    amount_is_gross = serializers.BooleanField(required=False, default=False)


class PriceBreakdownSerializer(serializers.Serializer):
    with_vat = serializers.DecimalField(max_digits=12, decimal_places=2)
    without_vat = serializers.DecimalField(max_digits=12, decimal_places=2)
    vat_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    vat_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)


class FeeOptionSerializer(serializers.Serializer):
    """One entry of the registration form's fee list, whichever pricing scheme produced it."""
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    net = serializers.DecimalField(max_digits=10, decimal_places=2)
    gross = serializers.DecimalField(max_digits=10, decimal_places=2)
    vat_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    currency = serializers.CharField()
    status = serializers.ChoiceField(choices=FEE_STATUSES)
    status_label = serializers.SerializerMethodField()
    display_price = serializers.SerializerMethodField()
    is_available = serializers.BooleanField()
    sold_count = serializers.IntegerField()
    capacity = serializers.IntegerField(allow_null=True)
    capacity_remaining = serializers.IntegerField(allow_null=True)

    def get_status_label(self, obj) -> str:
        return STATUS_LABELS[obj.status]

    def get_display_price(self, obj) -> str:
        return format_price_with_symbol(obj.gross, obj.currency)


class QuoteSerializer(serializers.Serializer):
    fee_id = serializers.CharField(allow_null=True)
    pricing_tier = serializers.CharField(allow_null=True)
    fee_name = serializers.CharField()
    price_net = serializers.DecimalField(max_digits=10, decimal_places=2)
    price_gross = serializers.DecimalField(max_digits=10, decimal_places=2)
    vat_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    vat_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    currency = serializers.CharField()


class CurrentPricingSerializer(serializers.Serializer):
    tier = serializers.CharField()
    tier_name = serializers.CharField()
    participant_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    student_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    accompanying_person_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    participant_breakdown = PriceBreakdownSerializer()
    student_breakdown = PriceBreakdownSerializer()
    deadline = serializers.CharField(allow_null=True)
    next_tier = serializers.CharField(allow_null=True)
    next_tier_date = serializers.CharField(allow_null=True)


class RegistrationSerializer(serializers.ModelSerializer):
    vat_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Registration
        fields = [
            'id', 'conference', 'registration_fee', 'pricing_tier', 'first_name', 'last_name',
            'email', 'is_student', 'status', 'fee_name', 'price_net', 'price_gross',
            'vat_percentage', 'vat_amount', 'currency', 'holds_fee_slot', 'cancelled_at',
            'created_at',
        ]
        read_only_fields = fields


class RegistrationCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    registration_fee_id = serializers.UUIDField(required=False, allow_null=True)
    is_student = serializers.BooleanField(required=False, default=False)


class PublicConferenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Conference
        fields = ['id', 'name', 'slug', 'start_date', 'end_date', 'currency']
