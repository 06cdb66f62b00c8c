# backend/tripbooking/tasks/notification_tasks.py
"""
Celery task that drains queued domain events into notification emails.

Each job is retried by the job queue itself (attempts, backoff, terminal
``failed`` status), so the Celery task is not retried.
"""

from typing import Any, Dict, Optional

from celery.utils.log import get_task_logger

from ..database.gateway import PersistenceGateway, get_persistence_gateway
from ..services.notification_service import NotificationService
from .celery_app import celery_app

logger = get_task_logger(__name__)


def drain_notification_jobs(
    persistence: Optional[PersistenceGateway] = None,
    service: Optional[NotificationService] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Process one batch of due jobs and return the counts."""
    service = service or NotificationService(persistence or get_persistence_gateway())
    summary = service.process_pending_jobs(limit=limit)
    if summary.claimed:
        logger.info(
            "Notification drain: claimed=%s delivered=%s retried=%s failed=%s",
            summary.claimed,
            summary.delivered,
            summary.retried,
            summary.failed,
        )
    return {
        "claimed": summary.claimed,
        "delivered": summary.delivered,
        "retried": summary.retried,
        "failed": summary.failed,
        "skipped": summary.skipped,
    }


@celery_app.task(
    name="tripbooking.tasks.notification_tasks.process_notification_jobs",
    max_retries=0,
    queue="notifications",
)
def process_notification_jobs(limit: Optional[int] = None) -> Dict[str, Any]:
    return drain_notification_jobs(limit=limit)
