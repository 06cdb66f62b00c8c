# backend/tripbooking/services/notification_service.py
"""
Notification Service.

Turns queued domain events into emails for the tourist and the driver on a
booking. Delivery is best effort: ``send`` never raises, and a job whose
emails could not all be sent is rescheduled by the job queue.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RoleName
from ..database.gateway import PersistenceGateway
from ..events.publisher import EVENT_JOB_PREFIX
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.catalog_repository import CatalogRepository, Contact
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .email import Mailer, build_mailer
from .template_service import TemplateService

logger = logging.getLogger(__name__)

# event type -> (template, subject for tourist, subject for driver)
EVENT_MESSAGES: Dict[str, Tuple[str, str, str]] = {
    "BookingCreated": (
        "email/booking_created.txt",
        "Booking request received",
        "New booking request",
    ),
    "BookingStatusChanged": (
        "email/booking_status_changed.txt",
        "Your booking status changed",
        "Booking status changed",
    ),
    "BookingCancelled": (
        "email/booking_cancelled.txt",
        "Your booking was cancelled",
        "A booking was cancelled",
    ),
    "PaymentCompleted": (
        "email/payment_completed.txt",
        "Payment received - booking confirmed",
        "Booking confirmed",
    ),
}


@dataclass(frozen=True)
class OutgoingMessage:
    to: str
    subject: str
    body: str


@dataclass
class DrainSummary:
    """Counts from one pass over the job queue."""

    claimed: int = 0
    delivered: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    failed_job_ids: List[str] = field(default_factory=list)


class NotificationService(BaseService):
    def __init__(
        self,
        persistence: PersistenceGateway,
        mailer: Optional[Mailer] = None,
        template_service: Optional[TemplateService] = None,
    ):
        super().__init__(persistence)
        self.mailer = mailer or build_mailer()
        self.template_service = template_service or TemplateService()

    def send(self, to: str, subject: str, body: str) -> bool:
        """Deliver one email. Failures are logged and counted, never raised."""
        try:
            self.mailer.send(to, subject, body)
            return True
        except Exception as exc:
            prometheus_metrics.inc_notification_failure("deliver")
            self.logger.error(
                "Failed to send email to %s: %s",
                to,
                exc,
                extra={"event": "notification_send_failed", "subject": subject, "error": str(exc)},
            )
            return False

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build_messages(self, event_type: str, payload: Dict[str, Any]) -> List[OutgoingMessage]:
        """Render the tourist and driver emails for one event."""
        entry = EVENT_MESSAGES.get(event_type)
        if entry is None:
            return []
        template, tourist_subject, driver_subject = entry

        tourist, driver = self.transaction(
            lambda session: self._load_contacts(session, payload), op_name="notifications.contacts"
        )
        context = dict(payload)
        context["tourist_name"] = tourist.name if tourist else "Tourist"
        context["driver_name"] = driver.name if driver else "Driver"
        if "fee" in payload:
            context["fee_due"] = str(payload["fee"]) not in ("0", "0.00", "")

        messages = []
        for audience, contact, subject in (
            ("tourist", tourist, tourist_subject),
            ("driver", driver, driver_subject),
        ):
            if contact is None or not contact.email:
                self.logger.warning(
                    "No %s contact for booking %s; skipping email",
                    audience,
                    payload.get("booking_id"),
                )
                continue
            body = self.template_service.render_template(
                template, context, audience=audience, recipient_name=contact.name
            )
            messages.append(OutgoingMessage(to=contact.email, subject=subject, body=body))
        return messages

    @staticmethod
    def _load_contacts(session: Session, payload: Dict[str, Any]) -> Tuple[Optional[Contact], Optional[Contact]]:
        catalog: CatalogRepository = RepositoryFactory.create_catalog_repository(session)
        tourist_id = payload.get("tourist_id")
        driver_id = payload.get("driver_id")
        tourist = catalog.get_contact(RoleName.TOURIST, tourist_id) if tourist_id else None
        driver = catalog.get_contact(RoleName.DRIVER, driver_id) if driver_id else None
        return tourist, driver

    def deliver_event(self, event_type: str, payload: Dict[str, Any]) -> bool:
        """Send every email for an event; True only if all of them went out."""
        results = [self.send(m.to, m.subject, m.body) for m in self.build_messages(event_type, payload)]
        return all(results)

    # ------------------------------------------------------------------
    # Job queue
    # ------------------------------------------------------------------

    @BaseService.measure_operation("process_notification_jobs")
    def process_pending_jobs(self, limit: Optional[int] = None) -> DrainSummary:
        """Claim due event jobs, deliver them, and record each outcome."""
        batch_size = limit or settings.notification_batch_size
        summary = DrainSummary()

        claimed = self.transaction(
            lambda session: self._claim_jobs(session, batch_size), op_name="notifications.claim"
        )
        summary.claimed = len(claimed)

        for job_id, job_type, payload in claimed:
            if not job_type.startswith(EVENT_JOB_PREFIX) or job_type[len(EVENT_JOB_PREFIX):] not in EVENT_MESSAGES:
                self.logger.warning("No notification handler for job type %s", job_type)
                self._finish_job(job_id, error=None)
                summary.skipped += 1
                continue

            event_type = job_type[len(EVENT_JOB_PREFIX):]
            try:
                delivered = self.deliver_event(event_type, payload)
                error = None if delivered else "one or more emails could not be sent"
            except Exception as exc:
                prometheus_metrics.inc_notification_failure("deliver")
                self.logger.error(
                    "Notification job %s failed: %s",
                    job_id,
                    exc,
                    extra={
                        "event": "notification_job_failed",
                        "booking_id": payload.get("booking_id"),
                        "error": str(exc),
                    },
                )
                error = str(exc) or type(exc).__name__

            terminal = self._finish_job(job_id, error=error)
            if error is None:
                summary.delivered += 1
            elif terminal:
                summary.failed += 1
                summary.failed_job_ids.append(job_id)
            else:
                summary.retried += 1

        if summary.claimed:
            self.log_operation(
                "process_notification_jobs",
                claimed=summary.claimed,
                delivered=summary.delivered,
                retried=summary.retried,
                failed=summary.failed,
            )
        return summary

    @staticmethod
    def _claim_jobs(session: Session, limit: int) -> List[Tuple[str, str, Dict[str, Any]]]:
        jobs = RepositoryFactory.create_job_repository(session)
        jobs.requeue_stale(visibility_timeout_seconds=settings.notification_visibility_timeout_seconds)
        claimed = []
        for job in jobs.fetch_due(limit=limit):
            jobs.mark_running(job)
            claimed.append((job.id, job.type, dict(job.payload or {})))
        return claimed

    def _finish_job(self, job_id: str, error: Optional[str]) -> bool:
        """Mark the job done, or record the failure. Returns True when it is now terminal."""

        def _finish(session: Session) -> bool:
            jobs = RepositoryFactory.create_job_repository(session)
            job = jobs.get_by_id(job_id, for_update=True)
            if job is None:
                return False
            if error is None:
                jobs.mark_succeeded(job)
                return False
            return jobs.mark_failed(job, error)

        terminal = self.transaction(_finish, op_name="notifications.finish")
        if terminal:
            self.logger.error(
                "Notification job %s exhausted its attempts",
                job_id,
                extra={"event": "notification_job_dead", "error": error},
            )
        return terminal
