"""Scheduled notification jobs: shift reminders and retention cleanup."""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from crewx.config import get_settings
from crewx.exceptions import ValidationError
from crewx.records import NotificationType
from crewx.store import DataStore

logger = logging.getLogger(__name__)


class NotificationService:
    """Batch notification jobs run from the CLI or a scheduler."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = DataStore(session)

    async def send_shift_reminders(self, on_date: date) -> int:
        """Send one SHIFT_REMINDER to each worker enrolled in a job on ``on_date``."""
        items = []
        for job in await self.store.jobs.get_all():
            if job.date != on_date:
                continue
            for enrollment in await self.store.enrollments.list_for_job(job.id):
                items.append(
                    {
                        "user_id": enrollment.user_id,
                        "title": "Shift Reminder",
                        "message": (
                            f"Reminder: '{job.title}' at {job.location} "
                            f"on {job.date.isoformat()}, {job.time}."
                        ),
                        "type": NotificationType.SHIFT_REMINDER,
                        "event_id": job.id,
                    }
                )
        sent = await self.store.notifications.add_many(items)
        await self.session.commit()
        logger.info("Sent %d shift reminder(s) for %s", sent, on_date.isoformat())
        return sent

    async def cleanup_old_notifications(
        self, days: int | None = None, now: datetime | None = None
    ) -> int:
        """Delete notifications older than the retention window."""
        if days is None:
            days = get_settings().notification_retention_days
        if days < 0:
            raise ValidationError("days", "must not be negative")
        removed = await self.store.notifications.cleanup_older_than(days, now=now)
        await self.session.commit()
        logger.info("Removed %d notification(s) older than %d day(s)", removed, days)
        return removed
