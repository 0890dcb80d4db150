from django.contrib import admin
from django.utils import timezone

from .models import Conference, CustomRegistrationFee, Registration


class CustomRegistrationFeeInline(admin.TabularInline):
    model = CustomRegistrationFee
    extra = 0
    fields = (
        'name', 'price_net', 'vat_percentage', 'price_gross', 'valid_from', 'valid_to',
        'is_active', 'capacity', 'sold_count', 'display_order'
    )
    readonly_fields = ('price_gross', 'sold_count')
    ordering = ('display_order',)


@admin.register(Conference)
class ConferenceAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'start_date', 'end_date', 'currency', 'is_published', 'created_at')
    search_fields = ('name', 'slug')
    list_filter = ('is_published', 'currency', 'start_date')
    readonly_fields = ('created_at', 'updated_at')
    ordering = ('-start_date',)
    inlines = [CustomRegistrationFeeInline]


@admin.register(CustomRegistrationFee)
class CustomRegistrationFeeAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'conference', 'price_net', 'vat_percentage', 'price_gross',
        'valid_from', 'valid_to', 'capacity', 'sold_count', 'current_status'
    )
    search_fields = ('name', 'conference__name')
    list_filter = ('is_active', 'conference')
    readonly_fields = ('price_gross', 'sold_count', 'created_at', 'updated_at')
    ordering = ('conference', 'display_order')

    @admin.display(description='status')
    def current_status(self, obj):
        return obj.status(timezone.localdate())


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    """
    🚀 ENTERPRISE: Admin interface for registrations and their price snapshot
    """
    list_display = (
        'email', 'first_name', 'last_name', 'conference', 'fee_name',
        'price_gross', 'currency', 'status', 'holds_fee_slot', 'created_at'
    )
    search_fields = ('email', 'first_name', 'last_name', 'fee_name', 'conference__name')
    list_filter = ('status', 'conference', 'holds_fee_slot')
    readonly_fields = (
        'fee_name', 'pricing_tier', 'price_net', 'price_gross', 'vat_percentage',
        'currency', 'holds_fee_slot', 'cancelled_at', 'created_at', 'updated_at'
    )
    ordering = ('-created_at',)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('conference', 'registration_fee')
