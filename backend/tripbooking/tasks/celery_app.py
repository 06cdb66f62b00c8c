# backend/tripbooking/tasks/celery_app.py
"""
Celery application configuration.

Redis is the broker and result backend. Beat drives the notification
drain on a fixed interval.
"""

import os
from typing import Any

from celery import Celery
from celery.signals import setup_logging

from ..core.config import settings


def get_beat_schedule() -> dict:
    return {
        "process-notification-jobs": {
            "task": "tripbooking.tasks.notification_tasks.process_notification_jobs",
            "schedule": settings.notification_poll_seconds,
            "options": {"queue": "notifications", "expires": settings.notification_poll_seconds},
        },
    }


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Priority for the broker: CELERY_BROKER_URL -> REDIS_URL -> settings.redis_url
    """
    broker_url = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or settings.redis_url
    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery("tripbooking", broker=broker_url, backend=result_backend)

    celery_app.conf.update(
        {
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            "worker_prefetch_multiplier": 1,
            "task_soft_time_limit": 120,
            "task_time_limit": 300,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )
    celery_app.conf.imports = ("tripbooking.tasks.notification_tasks",)
    celery_app.conf.task_routes = {
        "tripbooking.tasks.notification_tasks.*": {"queue": "notifications"},
    }
    celery_app.conf.beat_schedule = get_beat_schedule()
    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect
def config_loggers(*args: Any, **kwargs: Any) -> None:
    import logging

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


celery_app = create_celery_app()
