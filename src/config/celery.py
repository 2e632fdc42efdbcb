"""
Celery application for the shop project.

DJANGO_SETTINGS_MODULE is set before the app is created so Celery reads
the Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("shop")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up modules.orders.tasks
app.autodiscover_tasks()
