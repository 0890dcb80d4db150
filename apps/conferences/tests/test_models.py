"""
Tests for conference, fee and registration models.
"""

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from apps.conferences.exceptions import InvalidDateRange, InvalidPricingSchedule
from apps.conferences.models import Conference, CustomRegistrationFee, Registration
from apps.conferences.vat import price_with_vat


class ConferenceTestCase(TestCase):

    def test_slug_is_generated_and_unique(self):
        first = Conference.objects.create(name='Adriatic Physics Meeting')
        second = Conference.objects.create(name='Adriatic Physics Meeting')
        self.assertEqual(first.slug, 'adriatic-physics-meeting')
        self.assertEqual(second.slug, 'adriatic-physics-meeting-1')

    def test_explicit_slug_is_kept(self):
        conference = Conference.objects.create(name='Any', slug='custom-slug')
        self.assertEqual(conference.slug, 'custom-slug')

    def test_pricing_config_uses_conference_currency(self):
        conference = Conference.objects.create(name='Geo', currency='USD', pricing={'vat_percentage': '13'})
        self.assertEqual(conference.pricing_config.currency, 'USD')
        self.assertEqual(conference.vat_percentage, Decimal('13'))

    def test_pricing_currency_wins(self):
        conference = Conference.objects.create(name='Geo', currency='USD', pricing={'currency': 'gbp'})
        self.assertEqual(conference.pricing_config.currency, 'GBP')

    def test_no_vat_configured(self):
        conference = Conference.objects.create(name='Geo')
        self.assertIsNone(conference.vat_percentage)

    @override_settings(DEFAULT_VAT_PERCENTAGE='20')
    def test_default_vat_applies_without_conference_rate(self):
        plain = Conference.objects.create(name='Geo')
        own_rate = Conference.objects.create(name='Bio', pricing={'vat_percentage': 0})
        self.assertEqual(plain.vat_percentage, Decimal('20'))
        self.assertEqual(own_rate.vat_percentage, Decimal('0'))

    def test_invalid_schedule_date_rejected_on_save(self):
        with self.assertRaises(InvalidPricingSchedule):
            Conference.objects.create(name='Geo', pricing={
                'regular': {'amount': 150, 'start_date': '2025-02-30', 'end_date': '2025-03-31'},
            })
        self.assertFalse(Conference.objects.exists())

    def test_clean_reports_invalid_schedule_on_pricing_field(self):
        conference = Conference(name='Geo', pricing={'late': {'amount': 200, 'start_date': '2025-13-01'}})
        with self.assertRaises(ValidationError) as ctx:
            conference.clean()
        self.assertIn('pricing', ctx.exception.message_dict)


class CustomRegistrationFeeTestCase(TestCase):

    def setUp(self):
        self.conference = Conference.objects.create(name='Chemistry Days', start_date=date(2025, 3, 10))

    def create_fee(self, **overrides):
        data = {
            'conference': self.conference,
            'name': 'Standard',
            'price_net': Decimal('100'),
            'vat_percentage': Decimal('25'),
            'valid_from': date(2025, 1, 1),
            'valid_to': date(2025, 1, 31),
        }
        data.update(overrides)
        return CustomRegistrationFee.objects.create(**data)

    def test_gross_derived_on_create(self):
        fee = self.create_fee()
        fee.refresh_from_db()
        self.assertEqual(fee.price_net, Decimal('100.00'))
        self.assertEqual(fee.price_gross, Decimal('125.00'))

    def test_gross_follows_every_edit(self):
        fee = self.create_fee()
        fee.price_net = Decimal('33.33')
        fee.vat_percentage = Decimal('13')
        fee.save(update_fields=['price_net', 'vat_percentage'])
        fee.refresh_from_db()
        self.assertEqual(fee.price_gross, price_with_vat(fee.price_net, fee.vat_percentage))
        self.assertEqual(fee.price_gross, Decimal('37.66'))

    def test_reversed_window_rejected(self):
        with self.assertRaises(InvalidDateRange):
            self.create_fee(valid_from=date(2025, 2, 1), valid_to=date(2025, 1, 1))
        self.assertFalse(CustomRegistrationFee.objects.exists())

    def test_single_day_window(self):
        fee = self.create_fee(valid_from=date(2025, 1, 5), valid_to=date(2025, 1, 5))
        self.assertEqual(fee.status(date(2025, 1, 5)), 'active')

    def test_string_dates_are_parsed(self):
        fee = self.create_fee(valid_from='2025-01-01', valid_to='2025-01-31')
        self.assertEqual(fee.valid_to, date(2025, 1, 31))

    def test_sold_count_cannot_exceed_capacity(self):
        fee = self.create_fee(capacity=1, sold_count=1)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                CustomRegistrationFee.objects.filter(id=fee.id).update(sold_count=2)

    def test_capacity_remaining(self):
        self.assertIsNone(self.create_fee().capacity_remaining)
        self.assertEqual(self.create_fee(capacity=3, sold_count=1).capacity_remaining, 2)

    def test_ordering(self):
        second = self.create_fee(name='B', display_order=1)
        first = self.create_fee(name='A', display_order=0)
        self.assertEqual(list(self.conference.registration_fees.all()), [first, second])


class RegistrationTestCase(TestCase):

    def setUp(self):
        self.conference = Conference.objects.create(name='Chemistry Days')
        self.fee = CustomRegistrationFee.objects.create(
            conference=self.conference,
            name='Standard',
            price_net=Decimal('100'),
            vat_percentage=Decimal('25'),
            valid_from=date(2025, 1, 1),
            valid_to=date(2025, 1, 31),
            capacity=5,
            sold_count=1,
        )
        self.registration = Registration.objects.create(
            conference=self.conference,
            registration_fee=self.fee,
            first_name='Ana',
            last_name='Horvat',
            email='ana@example.com',
            fee_name=self.fee.name,
            price_net=self.fee.price_net,
            price_gross=self.fee.price_gross,
            vat_percentage=self.fee.vat_percentage,
            holds_fee_slot=True,
        )

    def test_vat_amount(self):
        self.assertEqual(self.registration.vat_amount, Decimal('25.00'))

    def test_fee_delete_detaches_and_keeps_snapshot(self):
        self.fee.delete()
        self.registration.refresh_from_db()
        self.assertIsNone(self.registration.registration_fee)
        self.assertEqual(self.registration.fee_name, 'Standard')
        self.assertEqual(self.registration.price_gross, Decimal('125.00'))

    def test_deleting_slot_holder_releases_slot(self):
        self.registration.delete()
        self.fee.refresh_from_db()
        self.assertEqual(self.fee.sold_count, 0)
