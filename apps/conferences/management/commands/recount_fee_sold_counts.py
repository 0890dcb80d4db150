"""
Rebuild ``sold_count`` on custom registration fees from their registrations.

Usage:
    python manage.py recount_fee_sold_counts
    python manage.py recount_fee_sold_counts --conference <uuid>
    python manage.py recount_fee_sold_counts --dry-run
"""

from django.core.management.base import BaseCommand

from apps.conferences.capacity import slot_counts, recount_sold_counts
from apps.conferences.models import Conference


class Command(BaseCommand):
    help = 'Rebuild sold_count on custom registration fees from their registrations'

    def add_arguments(self, parser):
        parser.add_argument(
            '--conference',
            help='Only recount fees of this conference id',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show drifted counters without fixing them',
        )

    def handle(self, *args, **options):
        conferences = Conference.objects.filter(registration_fees__isnull=False).distinct()
        if options['conference']:
            conferences = conferences.filter(id=options['conference'])

        total_fixed = 0
        for conference in conferences:
            if options['dry_run']:
                counts = slot_counts(conference)
                for fee in conference.registration_fees.all():
                    actual = counts.get(str(fee.id), 0)
                    if fee.sold_count != actual:
                        self.stdout.write(
                            f'  - {conference.name} / {fee.name}: stored {fee.sold_count}, actual {actual}'
                        )
                        total_fixed += 1
                continue

            changed = recount_sold_counts(conference)
            for fee_id, (old, new) in changed.items():
                self.stdout.write(f'  - {conference.name} / {fee_id}: {old} -> {new}')
            total_fixed += len(changed)

        if total_fixed == 0:
            self.stdout.write(self.style.SUCCESS('No drifted counters found.'))
        elif options['dry_run']:
            self.stdout.write(self.style.WARNING(f'DRY RUN: {total_fixed} counter(s) would be fixed'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Fixed {total_fixed} counter(s)'))
