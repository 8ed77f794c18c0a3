"""
Celery configuration for the coverage marketplace service.

Celery runs the periodic SLA maintenance sweep and any work that must not
block a request. Redis is the broker and result backend; beat schedules are
stored with django-celery-beat (see marketplace/schedules.py).

Usage:
    # Worker and scheduler
    celery -A config worker -l info
    celery -A config beat -l info

    # Trigger the sweep by hand
    from marketplace.tasks import run_sla_maintenance
    run_sla_maintenance.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up marketplace/tasks.py
app.autodiscover_tasks()
