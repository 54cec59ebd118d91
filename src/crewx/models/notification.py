"""In-app notification model."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crewx.models.base import Base, TimestampMixin


class Notification(Base, TimestampMixin):
    """Message delivered to one account."""

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    # Related job; not a foreign key so notifications outlive deleted jobs.
    event_id: Mapped[UUID | None] = mapped_column(nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('NEW_EVENT', 'SHIFT_REMINDER', 'PAYOUT_UPDATE', 'PAYMENT')",
            name="notifications_type_check",
        ),
    )
