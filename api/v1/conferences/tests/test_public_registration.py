import uuid
from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.conferences import services
from apps.conferences.models import Conference, Registration


class PublicApiTestCase(APITestCase):

    def setUp(self):
        self.today = timezone.localdate()
        self.conference = Conference.objects.create(
            name="Neuroscience Meeting",
            start_date=self.today + timedelta(days=90),
            is_published=True,
            pricing=self.legacy_pricing(),
        )

    def legacy_pricing(self):
        day = lambda offset: (self.today + timedelta(days=offset)).isoformat()
        return {
            'vat_percentage': 25,
            'early_bird': {'amount': 100, 'deadline': day(-30)},
            'regular': {'amount': 150, 'start_date': day(-29), 'end_date': day(30)},
            'late': {'amount': 200, 'start_date': day(31), 'end_date': day(60)},
            'student_discount': 50,
        }

    def create_fee(self, **overrides):
        data = {
            'name': 'Standard',
            'price_net': Decimal('100'),
            'vat_percentage': Decimal('25'),
            'valid_from': self.today - timedelta(days=5),
            'valid_to': self.today + timedelta(days=5),
        }
        data.update(overrides)
        return services.create_registration_fee(self.conference, data)

    def url(self, name):
        return reverse(name, kwargs={'slug': self.conference.slug})


class PublicConferenceTests(PublicApiTestCase):

    def test_detail(self):
        response = self.client.get(self.url('public-conference-detail'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['slug'], 'neuroscience-meeting')

    def test_unpublished_is_hidden(self):
        self.conference.is_published = False
        self.conference.save()
        response = self.client.get(self.url('public-conference-detail'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_current_pricing(self):
        response = self.client.get(self.url('public-conference-pricing'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tier'], 'regular')
        self.assertEqual(response.data['tier_name'], 'Regular')
        self.assertEqual(response.data['participant_price'], '150.00')
        self.assertEqual(response.data['student_price'], '100.00')
        self.assertEqual(response.data['participant_breakdown']['with_vat'], '187.50')
        self.assertEqual(response.data['next_tier'], 'late')

    def test_pricing_when_closed(self):
        self.conference.pricing = {'regular': {'amount': 150, 'end_date': '2000-01-01'}}
        self.conference.save()

        response = self.client.get(self.url('public-conference-pricing'))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'registration_closed')

    def test_stored_schedule_with_impossible_date(self):
        # Rows written before save-time validation existed
        Conference.objects.filter(id=self.conference.id).update(pricing={
            'vat_percentage': 25,
            'regular': {'amount': 150, 'start_date': '2025-02-30', 'end_date': '2025-03-31'},
        })

        for name in ('public-conference-pricing', 'public-conference-registration-fees'):
            response = self.client.get(self.url(name))
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], 'invalid_pricing_schedule')
            self.assertEqual(response.data['details']['field'], 'regular.start_date')


class PublicFeeListTests(PublicApiTestCase):

    def test_legacy_tiers(self):
        response = self.client.get(self.url('public-conference-registration-fees'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['scheme'], 'tiers')
        statuses = {fee['id']: fee['status'] for fee in response.data['fees']}
        self.assertEqual(statuses['early_bird'], 'expired')
        self.assertEqual(statuses['regular'], 'active')
        self.assertEqual(statuses['student_regular'], 'active')
        self.assertEqual(statuses['late'], 'not_yet')

    def test_custom_fees_keep_unavailable_entries(self):
        self.create_fee(name='Open', capacity=10)
        self.create_fee(
            name='Later',
            valid_from=self.today + timedelta(days=10),
            valid_to=self.today + timedelta(days=20),
        )
        self.create_fee(name='Hidden', is_active=False)

        response = self.client.get(self.url('public-conference-registration-fees'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['scheme'], 'custom_fees')
        fees = response.data['fees']
        self.assertEqual([fee['name'] for fee in fees], ['Open', 'Later', 'Hidden'])
        self.assertEqual([fee['status'] for fee in fees], ['active', 'not_yet', 'inactive'])
        self.assertEqual([fee['is_available'] for fee in fees], [True, False, False])
        self.assertEqual(fees[0]['gross'], '125.00')
        self.assertEqual(fees[0]['display_price'], '125 €')
        self.assertEqual(fees[0]['capacity_remaining'], 10)
        self.assertEqual(fees[1]['status_label'], 'Not available yet')


class PublicRegistrationTests(PublicApiTestCase):

    def payload(self, **overrides):
        payload = {
            'first_name': 'Nina',
            'last_name': 'Matic',
            'email': 'nina@example.com',
        }
        payload.update(overrides)
        return payload

    def test_quote_custom_fee(self):
        fee = self.create_fee()
        response = self.client.get(self.url('public-conference-quote'), {'fee_id': str(fee.id)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fee_id'], str(fee.id))
        self.assertEqual(response.data['price_gross'], '125.00')
        self.assertEqual(response.data['vat_amount'], '25.00')

    def test_quote_legacy_student(self):
        response = self.client.get(self.url('public-conference-quote'), {'is_student': 'true'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pricing_tier'], 'student_regular')
        self.assertEqual(response.data['price_gross'], '125.00')

    def test_register_with_custom_fee(self):
        fee = self.create_fee(capacity=1)

        response = self.client.post(
            self.url('public-conference-registrations'),
            self.payload(registration_fee_id=str(fee.id)),
            format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['registration_fee'], fee.id)
        self.assertEqual(response.data['price_gross'], '125.00')
        self.assertTrue(response.data['holds_fee_slot'])
        fee.refresh_from_db()
        self.assertEqual(fee.sold_count, 1)

    def test_sold_out_fee_is_rejected(self):
        fee = self.create_fee(capacity=1)
        url = self.url('public-conference-registrations')
        self.client.post(url, self.payload(registration_fee_id=str(fee.id)), format="json")

        response = self.client.post(url, self.payload(email='late@example.com', registration_fee_id=str(fee.id)), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'fee_unavailable')
        self.assertEqual(response.data['details']['status'], 'sold_out')
        self.assertEqual(Registration.objects.count(), 1)

    def test_unknown_fee(self):
        response = self.client.post(
            self.url('public-conference-registrations'),
            self.payload(registration_fee_id=str(uuid.uuid4())),
            format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'fee_not_found')

    def test_register_with_legacy_tier(self):
        response = self.client.post(self.url('public-conference-registrations'), self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['pricing_tier'], 'regular')
        self.assertEqual(response.data['fee_name'], 'Regular')
        self.assertEqual(response.data['price_net'], '150.00')
        self.assertEqual(response.data['price_gross'], '187.50')
        self.assertIsNone(response.data['registration_fee'])

    def test_invalid_email(self):
        response = self.client.post(
            self.url('public-conference-registrations'),
            self.payload(email='not-an-email'),
            format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
