"""
Celery configuration for the marketplace payments service.

Celery runs the background work that must not block a checkout request,
such as rebuilding a PaymentIntentRecord that checkout failed to store.
Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    # Define a task in any app's tasks.py:
    from celery import shared_task

    @shared_task
    def reconcile_payment_intent_record(payment_intent_id):
        ...

    # Call the task asynchronously:
    reconcile_payment_intent_record.delay("pi_xxx")

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
