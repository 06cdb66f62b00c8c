# backend/tripbooking/tasks/__init__.py
"""
Celery tasks package.

Import the task modules here so they register with the app.
"""

from .celery_app import celery_app
from .notification_tasks import process_notification_jobs

__all__ = ["celery_app", "process_notification_jobs"]
