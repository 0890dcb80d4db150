"""
🚀 ENTERPRISE CELERY CONFIGURATION for the conference platform

Async and periodic jobs. The pricing engine itself is synchronous; the only
scheduled job is the nightly recount of custom fee sold counters.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('conferences')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Rebuild sold_count from registrations holding a slot
    'recount-fee-sold-counts': {
        'task': 'apps.conferences.tasks.recount_fee_sold_counts',
        'schedule': crontab(hour=3, minute=30),  # Daily at 3:30 AM
        'options': {
            'queue': 'maintenance',
            'routing_key': 'maintenance.recount_fees',
        }
    },
}

app.conf.task_routes = {
    'apps.conferences.tasks.recount_fee_sold_counts': {'queue': 'maintenance'},
}

app.conf.update(
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,       # Acknowledge after task completion
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    task_default_queue='default',
    task_default_exchange='default',
    task_default_exchange_type='direct',
    task_default_routing_key='default',
)
