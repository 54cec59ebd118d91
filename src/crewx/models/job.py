"""Job listing and enrollment models."""

from __future__ import annotations

import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from crewx.models.base import Base, TimestampMixin, utcnow


class Job(Base, TimestampMixin):
    """Event shift that workers enroll in."""

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False)
    pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_workers: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")
    # Set when the capacity policy closed the job, so a cancel may reopen it.
    auto_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("status IN ('OPEN', 'CLOSED', 'COMPLETED')", name="jobs_status_check"),
        CheckConstraint("max_workers > 0", name="jobs_max_workers_positive"),
        CheckConstraint(
            "enrolled_count >= 0 AND enrolled_count <= max_workers",
            name="jobs_enrolled_count_range",
        ),
    )


class Enrollment(Base):
    """A worker's registration for a job."""

    __tablename__ = "enrollments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrolled_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="enrollments_user_job_unique"),
    )
