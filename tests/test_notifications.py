"""Tests for shift reminders and notification retention."""

from datetime import date, datetime, timedelta, timezone

import pytest

from crewx.exceptions import ValidationError
from crewx.records import NotificationType
from crewx.services.bookkeeping import BookkeepingService
from crewx.services.notifications import NotificationService


@pytest.fixture
def notifications(session) -> NotificationService:
    return NotificationService(session)


class TestShiftReminders:
    async def test_one_reminder_per_enrolled_worker(
        self, session, notifications, store, make_worker, make_job
    ):
        shift_day = date(2026, 11, 14)
        enrolled = [await make_worker(), await make_worker()]
        idle = await make_worker()
        job = await make_job(title="Diwali Gala", on=shift_day)
        other_day = await make_job(on=shift_day + timedelta(days=1))
        bookkeeping = BookkeepingService(session)
        for worker in enrolled:
            await bookkeeping.enroll(worker.id, job.id)
        await bookkeeping.enroll(idle.id, other_day.id)

        sent = await notifications.send_shift_reminders(shift_day)

        assert sent == 2
        for worker in enrolled:
            reminders = [
                n
                for n in await store.notifications.list_for_user(worker.id)
                if n.type == NotificationType.SHIFT_REMINDER
            ]
            assert len(reminders) == 1
            assert reminders[0].event_id == job.id
            assert "Diwali Gala" in reminders[0].message
        idle_types = {n.type for n in await store.notifications.list_for_user(idle.id)}
        assert NotificationType.SHIFT_REMINDER not in idle_types

    async def test_no_jobs_that_day(self, notifications):
        assert await notifications.send_shift_reminders(date(2026, 1, 1)) == 0


class TestCleanup:
    async def test_uses_retention_window(self, session, notifications, store, make_worker):
        worker = await make_worker()
        now = datetime.now(timezone.utc)
        await store.notifications.add_many(
            [
                {
                    "user_id": worker.id,
                    "title": f"Note {age}",
                    "message": "m",
                    "type": NotificationType.PAYMENT,
                    "created_at": now - timedelta(days=age),
                }
                for age in (1, 10, 40)
            ]
        )
        await session.commit()

        assert await notifications.cleanup_old_notifications(days=7, now=now) == 2
        remaining = await store.notifications.list_for_user(worker.id)
        assert [n.title for n in remaining] == ["Note 1"]

    async def test_negative_days_rejected(self, notifications):
        with pytest.raises(ValidationError):
            await notifications.cleanup_old_notifications(days=-1)
