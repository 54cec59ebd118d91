"""Withdrawal request and balance history models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from crewx.models.base import Base, TimestampMixin


class Withdrawal(Base, TimestampMixin):
    """Worker request to withdraw part of their balance."""

    __tablename__ = "withdrawals"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="withdrawals_status_check",
        ),
        CheckConstraint("amount > 0", name="withdrawals_amount_positive"),
    )


class BalanceEntry(Base, TimestampMixin):
    """Append-only record of a balance change made by a bookkeeping operation."""

    __tablename__ = "balance_entries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # signed delta
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    withdrawal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    job_id: Mapped[UUID | None] = mapped_column(nullable=True)
    memo: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('manual_payment', 'payout_reserved', 'payout_released')",
            name="balance_entries_kind_check",
        ),
    )
