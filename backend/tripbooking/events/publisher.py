"""Event publisher - queues events for background processing."""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, Dict, Protocol

from ..database.gateway import PersistenceGateway
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

EVENT_JOB_PREFIX = "event:"


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class EventPublisher:
    """
    Publishes domain events to the job queue for async processing.

    Call only after the business transaction has committed. Each publish
    runs in its own unit of work; failures are logged and counted but never
    raised, so a lost notification cannot undo a booking or payment.
    """

    def __init__(self, persistence: PersistenceGateway):
        self.persistence = persistence

    def publish(self, event: Event) -> bool:
        event_type = type(event).__name__
        payload = {key: _json_safe(value) for key, value in event.to_dict().items()}

        try:
            self.persistence.with_transaction(
                lambda session: RepositoryFactory.create_job_repository(session).enqueue(
                    type=f"{EVENT_JOB_PREFIX}{event_type}", payload=payload
                ),
                op_name="events.publish",
            )
            return True
        except Exception as exc:
            prometheus_metrics.inc_notification_failure("publish")
            logger.error(
                "Failed to publish %s: %s",
                event_type,
                exc,
                extra={
                    "event": "notification_publish_failed",
                    "booking_id": payload.get("booking_id"),
                    "error": str(exc),
                },
            )
            return False
