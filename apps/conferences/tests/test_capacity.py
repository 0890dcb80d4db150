"""
Tests for fee slot claims, releases and the sold count recount.
"""

import threading
import uuid
from datetime import date
from decimal import Decimal
from unittest import skipUnless

from django.db import connection, connections, transaction
from django.test import TestCase, TransactionTestCase

from apps.conferences import services
from apps.conferences.capacity import (
    claim_fee_slot,
    recount_sold_counts,
    release_fee_slot,
    slot_counts,
)
from apps.conferences.exceptions import CapacityExceeded, FeeNotFound, InvalidCapacity
from apps.conferences.models import Conference, CustomRegistrationFee, Registration


class CapacityTestMixin:

    def setUp(self):
        self.conference = Conference.objects.create(name='Biology Forum')
        self.fee = self.create_fee(capacity=3)

    def create_fee(self, **overrides):
        data = {
            'conference': self.conference,
            'name': 'Member',
            'price_net': Decimal('80'),
            'vat_percentage': Decimal('25'),
            'valid_from': date(2025, 1, 1),
            'valid_to': date(2025, 12, 31),
        }
        data.update(overrides)
        return CustomRegistrationFee.objects.create(**data)

    def create_registration(self, fee, holds_fee_slot=True):
        return Registration.objects.create(
            conference=self.conference,
            registration_fee=fee,
            first_name='Ivo',
            last_name='Kovac',
            email='ivo@example.com',
            fee_name=fee.name,
            price_net=fee.price_net,
            price_gross=fee.price_gross,
            vat_percentage=fee.vat_percentage,
            holds_fee_slot=holds_fee_slot,
        )


class ClaimFeeSlotTestCase(CapacityTestMixin, TestCase):

    def test_exactly_capacity_claims_succeed(self):
        """
        Back-to-back claims on one connection. This checks the conditional
        UPDATE, not interleaving; ``ConcurrentClaimTestCase`` runs real
        parallel claims when the test database is PostgreSQL.
        """
        attempts = 7
        succeeded = 0
        rejected = 0
        for _ in range(attempts):
            try:
                with transaction.atomic():
                    claim_fee_slot(self.fee.id)
                succeeded += 1
            except CapacityExceeded:
                rejected += 1

        self.fee.refresh_from_db()
        self.assertEqual(succeeded, 3)
        self.assertEqual(rejected, attempts - 3)
        self.assertEqual(self.fee.sold_count, 3)

    def test_stale_instance_cannot_oversell(self):
        # Both handlers loaded the fee while one slot was left
        CustomRegistrationFee.objects.filter(id=self.fee.id).update(sold_count=2)
        first_view = CustomRegistrationFee.objects.get(id=self.fee.id)
        second_view = CustomRegistrationFee.objects.get(id=self.fee.id)
        self.assertEqual(first_view.capacity_remaining, 1)
        self.assertEqual(second_view.capacity_remaining, 1)

        claim_fee_slot(first_view.id)
        with self.assertRaises(CapacityExceeded):
            claim_fee_slot(second_view.id)

        self.fee.refresh_from_db()
        self.assertEqual(self.fee.sold_count, 3)

    def test_unlimited_fee(self):
        fee = self.create_fee(capacity=None)
        for _ in range(25):
            claim_fee_slot(fee.id)
        fee.refresh_from_db()
        self.assertEqual(fee.sold_count, 25)

    def test_zero_capacity(self):
        fee = self.create_fee(capacity=0)
        with self.assertRaises(CapacityExceeded):
            claim_fee_slot(fee.id)

    def test_missing_fee(self):
        with self.assertRaises(FeeNotFound):
            claim_fee_slot(uuid.uuid4())

    def test_rejected_claim_carries_fee_id(self):
        fee = self.create_fee(capacity=0)
        with self.assertRaises(CapacityExceeded) as ctx:
            claim_fee_slot(fee.id)
        self.assertEqual(ctx.exception.context['fee_id'], str(fee.id))
        self.assertEqual(ctx.exception.code, 'capacity_exceeded')


@skipUnless(connection.vendor == 'postgresql', 'Parallel claims need a database server with row locking')
class ConcurrentClaimTestCase(CapacityTestMixin, TransactionTestCase):
    """Claims from separate threads, each on its own database connection."""

    def run_in_threads(self, *targets):
        barrier = threading.Barrier(len(targets))
        results = []

        def worker(target):
            try:
                barrier.wait()
                results.append(target())
            finally:
                connections.close_all()

        threads = [threading.Thread(target=worker, args=(target,)) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def claim(self):
        try:
            with transaction.atomic():
                claim_fee_slot(self.fee.id)
            return 'claimed'
        except CapacityExceeded:
            return 'rejected'

    def test_parallel_claims_never_oversell(self):
        results = self.run_in_threads(*[self.claim] * 8)

        self.fee.refresh_from_db()
        self.assertEqual(results.count('claimed'), 3)
        self.assertEqual(results.count('rejected'), 5)
        self.assertEqual(self.fee.sold_count, 3)

    def test_capacity_edit_racing_claims(self):
        CustomRegistrationFee.objects.filter(id=self.fee.id).update(capacity=10)

        def shrink():
            fee = CustomRegistrationFee.objects.get(id=self.fee.id)
            try:
                services.update_registration_fee(fee, {'capacity': 2})
                return 'resized'
            except InvalidCapacity:
                return 'refused'

        results = self.run_in_threads(shrink, *[self.claim] * 6)

        self.assertEqual(len(results), 7)
        self.fee.refresh_from_db()
        self.assertLessEqual(self.fee.sold_count, self.fee.capacity)
        if 'resized' in results:
            self.assertEqual(self.fee.capacity, 2)
        else:
            self.assertEqual(self.fee.capacity, 10)


class ReleaseFeeSlotTestCase(CapacityTestMixin, TestCase):

    def test_release_frees_a_slot(self):
        for _ in range(3):
            claim_fee_slot(self.fee.id)
        self.assertTrue(release_fee_slot(self.fee.id))
        claim_fee_slot(self.fee.id)

        self.fee.refresh_from_db()
        self.assertEqual(self.fee.sold_count, 3)

    def test_never_below_zero(self):
        self.assertFalse(release_fee_slot(self.fee.id))
        self.fee.refresh_from_db()
        self.assertEqual(self.fee.sold_count, 0)


class RecountTestCase(CapacityTestMixin, TestCase):

    def test_slot_counts(self):
        other = self.create_fee(name='Student')
        self.create_registration(self.fee)
        self.create_registration(self.fee)
        self.create_registration(self.fee, holds_fee_slot=False)
        self.create_registration(other)

        self.assertEqual(slot_counts(self.conference), {str(self.fee.id): 2, str(other.id): 1})

    def test_recount_fixes_drift(self):
        untouched = self.create_fee(name='Student')
        self.create_registration(self.fee)
        CustomRegistrationFee.objects.filter(id=self.fee.id).update(sold_count=3)

        changed = recount_sold_counts(self.conference)

        self.assertEqual(changed, {str(self.fee.id): (3, 1)})
        self.fee.refresh_from_db()
        untouched.refresh_from_db()
        self.assertEqual(self.fee.sold_count, 1)
        self.assertEqual(untouched.sold_count, 0)

    def test_recount_clamps_to_capacity(self):
        fee = self.create_fee(name='Tiny', capacity=1)
        self.create_registration(fee)
        self.create_registration(fee)

        changed = recount_sold_counts(self.conference)

        self.assertEqual(changed[str(fee.id)], (0, 1))
        fee.refresh_from_db()
        self.assertEqual(fee.sold_count, 1)

    def test_nothing_to_fix(self):
        self.assertEqual(recount_sold_counts(self.conference), {})
