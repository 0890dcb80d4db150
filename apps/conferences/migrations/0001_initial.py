# Generated migration for the conferences pricing models

from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Conference',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='name')),
                ('slug', models.SlugField(blank=True, max_length=255, unique=True, verbose_name='slug')),
                ('start_date', models.DateField(blank=True, null=True, verbose_name='start date')),
                ('end_date', models.DateField(blank=True, null=True, verbose_name='end date')),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='currency')),
                ('pricing', models.JSONField(blank=True, default=dict, help_text='Tier schedule, VAT settings, student and accompanying person prices', verbose_name='pricing')),
                ('is_published', models.BooleanField(default=False, verbose_name='is published')),
            ],
            options={
                'verbose_name': 'conference',
                'verbose_name_plural': 'conferences',
                'ordering': ['-start_date', 'name'],
            },
        ),
        migrations.CreateModel(
            name='CustomRegistrationFee',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='name')),
                ('description', models.TextField(blank=True, verbose_name='description')),
                ('price_net', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='net price')),
                ('vat_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))], verbose_name='VAT percentage')),
                ('price_gross', models.DecimalField(decimal_places=2, editable=False, max_digits=10, verbose_name='gross price')),
                ('valid_from', models.DateField(verbose_name='valid from')),
                ('valid_to', models.DateField(verbose_name='valid to')),
                ('is_active', models.BooleanField(default=True, verbose_name='is active')),
                ('capacity', models.PositiveIntegerField(blank=True, help_text='Leave empty for unlimited capacity', null=True, verbose_name='capacity')),
                ('sold_count', models.PositiveIntegerField(default=0, verbose_name='sold count')),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='currency')),
                ('display_order', models.IntegerField(default=0, verbose_name='display order')),
                ('conference', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='registration_fees', to='conferences.conference', verbose_name='conference')),
            ],
            options={
                'verbose_name': 'custom registration fee',
                'verbose_name_plural': 'custom registration fees',
                'ordering': ['display_order', 'created_at'],
                'indexes': [models.Index(fields=['conference', 'display_order'], name='conf_fee_order_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('valid_to__gte', models.F('valid_from'))), name='conferences_customregistrationfee_valid_window'),
                    models.CheckConstraint(condition=models.Q(('capacity__isnull', True), ('sold_count__lte', models.F('capacity')), _connector='OR'), name='conferences_customregistrationfee_sold_within_capacity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Registration',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('pricing_tier', models.CharField(blank=True, help_text='Legacy tier key (e.g. early_bird, student_regular) when no custom fee was used', max_length=32, verbose_name='pricing tier')),
                ('first_name', models.CharField(max_length=100, verbose_name='first name')),
                ('last_name', models.CharField(max_length=100, verbose_name='last name')),
                ('email', models.EmailField(max_length=254, verbose_name='email')),
                ('is_student', models.BooleanField(default=False, verbose_name='is student')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('paid', 'Paid'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='status')),
                ('fee_name', models.CharField(max_length=255, verbose_name='fee name')),
                ('price_net', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='net price')),
                ('price_gross', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='gross price')),
                ('vat_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5, verbose_name='VAT percentage')),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='currency')),
                ('holds_fee_slot', models.BooleanField(default=False, help_text="Whether this registration currently counts against the fee's capacity", verbose_name='holds fee slot')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='cancelled at')),
                ('conference', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='registrations', to='conferences.conference', verbose_name='conference')),
                ('registration_fee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='registrations', to='conferences.customregistrationfee', verbose_name='registration fee')),
            ],
            options={
                'verbose_name': 'registration',
                'verbose_name_plural': 'registrations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['conference', 'status'], name='conf_reg_status_idx'),
                    models.Index(fields=['registration_fee', 'holds_fee_slot'], name='conf_reg_fee_slot_idx'),
                ],
            },
        ),
    ]
