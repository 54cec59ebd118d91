"""Account, extended profile and admin credential models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crewx.models.base import Base, TimestampMixin, utcnow


class Account(Base, TimestampMixin):
    """Admin or worker identity. Workers carry a monetary balance."""

    __tablename__ = "workers"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    password: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="WORKER")
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('ADMIN', 'WORKER')", name="workers_role_check"),
        CheckConstraint("balance >= 0", name="workers_balance_non_negative"),
    )


class EmployeeDetails(Base, TimestampMixin):
    """Extended worker profile captured during onboarding."""

    __tablename__ = "employee_details"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    phone_number: Mapped[str] = mapped_column(String, nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    experience_works: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    place: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class AdminCredential(Base):
    """Admin login credentials, kept apart from the accounts table."""

    __tablename__ = "admin_auth"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    # Stored as entered; the admin path compares it directly.
    password: Mapped[str] = mapped_column(String, nullable=False)
