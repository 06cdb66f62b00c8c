"""Notification drain: event jobs become emails, failures are retried with backoff."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from tripbooking.core.config import settings
from tripbooking.core.enums import BookingStatus, JobStatus
from tripbooking.models import BackgroundJob
from tripbooking.repositories.factory import RepositoryFactory
from tripbooking.services.notification_service import NotificationService
from tripbooking.services.template_service import TemplateService, currency, format_date


class BrokenMailer:
    def __init__(self):
        self.calls = 0

    def send(self, to_email, subject, body):
        self.calls += 1
        raise ConnectionError("smtp down")


def _jobs(db):
    db.expire_all()
    return db.query(BackgroundJob).all()


def _make_due(db):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    db.query(BackgroundJob).update({BackgroundJob.available_at: past})
    db.commit()


class TestDrain:
    def test_booking_created_emails_tourist_and_driver(self, db, create_booking, notification_service, mailer):
        booking_id = create_booking()

        summary = notification_service.process_pending_jobs()

        assert summary.claimed == 1
        assert summary.delivered == 1
        recipients = sorted(message["to"] for message in mailer.outbox)
        assert recipients == ["ana@example.com", "dev@example.com"]
        tourist_mail = next(m for m in mailer.outbox if m["to"] == "ana@example.com")
        assert tourist_mail["subject"] == "Booking request received"
        assert booking_id in tourist_mail["body"]
        assert "$150.00" in tourist_mail["body"]
        (job,) = _jobs(db)
        assert job.status == JobStatus.DONE.value

    def test_nothing_due(self, notification_service, mailer):
        summary = notification_service.process_pending_jobs()
        assert summary.claimed == 0
        assert mailer.outbox == []

    def test_delivered_jobs_are_not_sent_again(self, create_booking, notification_service, mailer):
        create_booking()
        notification_service.process_pending_jobs()
        notification_service.process_pending_jobs()
        assert len(mailer.outbox) == 2

    def test_cancellation_fee_only_in_tourist_mail(self, create_booking, booking_service, notification_service, mailer, tourist):
        booking_id = create_booking(hours_from_now=5)
        booking_service.cancel_booking(tourist, booking_id, "Flight cancelled")

        notification_service.process_pending_jobs()

        cancelled = [m for m in mailer.outbox if "cancelled" in m["subject"]]
        by_recipient = {m["to"]: m["body"] for m in cancelled}
        assert "$50.00" in by_recipient["ana@example.com"]
        assert "$50.00" not in by_recipient["dev@example.com"]
        assert "Flight cancelled" in by_recipient["dev@example.com"]

    def test_completion_mail(self, create_booking, payment_service, booking_service, notification_service, mailer, tourist, driver):
        booking_id = create_booking()
        payment_service.process_payment(tourist, booking_id, "Card")
        booking_service.update_status(driver, booking_id, BookingStatus.COMPLETED)

        summary = notification_service.process_pending_jobs()

        assert summary.delivered == 3
        bodies = [m["body"] for m in mailer.outbox if m["to"] == "ana@example.com"]
        assert any("We hope you enjoyed the trip." in body for body in bodies)

    def test_unknown_job_type_is_skipped(self, db, persistence, notification_service, mailer):
        persistence.with_transaction(
            lambda session: RepositoryFactory.create_job_repository(session).enqueue(
                type="event:SomethingElse", payload={}
            )
        )

        summary = notification_service.process_pending_jobs()

        assert summary.skipped == 1
        assert mailer.outbox == []
        (job,) = _jobs(db)
        assert job.status == JobStatus.DONE.value

    def test_missing_contact_is_skipped(self, notification_service, mailer, seed):
        delivered = notification_service.deliver_event(
            "BookingStatusChanged",
            {
                "booking_id": "b1",
                "tourist_id": seed.tourist.id,
                "driver_id": "unknown-driver",
                "old_status": "PENDING",
                "new_status": "CONFIRMED",
            },
        )
        assert delivered is True
        assert [m["to"] for m in mailer.outbox] == ["ana@example.com"]


class TestFailures:
    def test_failed_delivery_is_rescheduled(self, db, persistence, create_booking):
        create_booking()
        service = NotificationService(persistence, mailer=BrokenMailer())

        summary = service.process_pending_jobs()

        assert summary.retried == 1
        assert summary.delivered == 0
        (job,) = _jobs(db)
        assert job.status == JobStatus.QUEUED.value
        assert job.attempts == 1
        assert job.last_error
        assert job.available_at.replace(tzinfo=timezone.utc) > datetime.now(timezone.utc)

        # Backoff keeps it out of the next pass
        assert service.process_pending_jobs().claimed == 0

    def test_job_fails_after_max_attempts(self, db, persistence, create_booking):
        create_booking()
        service = NotificationService(persistence, mailer=BrokenMailer())

        for _ in range(settings.notification_max_attempts):
            summary = service.process_pending_jobs()
            _make_due(db)

        assert summary.failed == 1
        assert len(summary.failed_job_ids) == 1
        (job,) = _jobs(db)
        assert job.status == JobStatus.FAILED.value
        assert job.attempts == settings.notification_max_attempts
        assert service.process_pending_jobs().claimed == 0

    def test_stale_running_job_is_requeued(self, db, persistence, create_booking, mailer):
        create_booking()
        past = datetime.now(timezone.utc) - timedelta(
            seconds=settings.notification_visibility_timeout_seconds + 60
        )
        db.query(BackgroundJob).update(
            {BackgroundJob.status: JobStatus.RUNNING.value, BackgroundJob.updated_at: past}
        )
        db.commit()
        service = NotificationService(persistence, mailer=mailer)

        assert service.process_pending_jobs().claimed == 0
        (job,) = _jobs(db)
        assert job.status == JobStatus.QUEUED.value
        assert job.attempts == 1
        assert "visibility timeout" in job.last_error

        _make_due(db)
        assert service.process_pending_jobs().delivered == 1
        assert len(mailer.outbox) == 2

    def test_running_job_within_timeout_is_left_alone(self, db, persistence, create_booking, mailer):
        create_booking()
        db.query(BackgroundJob).update(
            {
                BackgroundJob.status: JobStatus.RUNNING.value,
                BackgroundJob.updated_at: datetime.now(timezone.utc),
            }
        )
        db.commit()
        service = NotificationService(persistence, mailer=mailer)

        assert service.process_pending_jobs().claimed == 0
        (job,) = _jobs(db)
        assert job.status == JobStatus.RUNNING.value
        assert job.attempts == 0
        assert mailer.outbox == []

    def test_send_never_raises(self, persistence):
        mailer = BrokenMailer()
        service = NotificationService(persistence, mailer=mailer)
        assert service.send("a@example.com", "Hi", "Body") is False
        assert mailer.calls == 1

    def test_rendering_error_is_recorded_on_the_job(self, db, persistence, create_booking, mailer):
        create_booking()
        templates = MagicMock(spec=TemplateService)
        templates.render_template.side_effect = RuntimeError("bad template")
        service = NotificationService(persistence, mailer=mailer, template_service=templates)

        summary = service.process_pending_jobs()

        assert summary.retried == 1
        (job,) = _jobs(db)
        assert job.last_error == "bad template"


class TestTemplateFilters:
    @pytest.mark.parametrize(
        "value, expected",
        [("1234.5", "$1,234.50"), (None, "$0.00"), ("n/a", "n/a"), (20, "$20.00")],
    )
    def test_currency(self, value, expected):
        assert currency(value) == expected

    def test_format_date_accepts_iso_strings(self):
        assert format_date("2030-06-11") == "June 11, 2030"
        assert format_date("2030-06-11T09:00:00+00:00", "%Y/%m/%d") == "2030/06/11"
        assert format_date("next week") == "next week"
