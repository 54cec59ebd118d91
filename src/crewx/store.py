"""Data access facade over the CrewX tables.

One store per table, each exposing reads, upserts, partial updates and
deletes, and decoding rows into typed records. Stores never commit and never
retry: a failing statement raises the SQLAlchemy error unchanged and the
caller owns the transaction. The only side effect beyond the target table is
the new-job notification fan-out performed by ``JobStore.save``.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crewx.models import (
    Account,
    AdminCredential,
    BalanceEntry,
    EmployeeDetails,
    Enrollment,
    Job,
    Notification,
    Withdrawal,
    utcnow,
)
from crewx.records import (
    AccountRecord,
    BalanceEntryRecord,
    EmployeeDetailsRecord,
    EnrollmentRecord,
    JobRecord,
    NotificationRecord,
    NotificationType,
    Role,
    WithdrawalRecord,
    decode,
    decode_all,
)
from crewx.services.state_machine import JobStatus, PayoutStatus
from crewx.validation import normalize_email

logger = logging.getLogger(__name__)


class _TableStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalars(self, stmt: Any) -> list[Any]:
        # Guarded UPDATE statements bypass the identity map, so reads refresh it.
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _scalar_one_or_none(self, stmt: Any) -> Any:
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _get(self, model: type, key: Any) -> Any:
        return await self.session.get(model, key, populate_existing=True)


# ============================================================================
# Accounts
# ============================================================================


class AccountStore(_TableStore):
    """Accounts table (``workers``)."""

    async def get_all(self) -> list[AccountRecord]:
        rows = await self._scalars(select(Account).order_by(Account.created_at, Account.name))
        return decode_all(AccountRecord, rows)

    async def list_workers(self) -> list[AccountRecord]:
        rows = await self._scalars(
            select(Account).where(Account.role == Role.WORKER).order_by(Account.name)
        )
        return decode_all(AccountRecord, rows)

    async def get(self, account_id: UUID) -> AccountRecord | None:
        row = await self._get(Account, account_id)
        return decode(AccountRecord, row) if row is not None else None

    async def get_by_email(self, email: str) -> AccountRecord | None:
        row = await self._scalar_one_or_none(
            select(Account).where(Account.email == normalize_email(email))
        )
        return decode(AccountRecord, row) if row is not None else None

    async def save(self, record: AccountRecord) -> AccountRecord:
        """Upsert an account. Fields never set on the record are left untouched."""
        values = record.model_dump(exclude_unset=True)
        values["id"] = record.id
        if "email" in values:
            values["email"] = normalize_email(values["email"])

        row = await self._get(Account, record.id)
        if row is None:
            row = Account(**values)
            self.session.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
        await self.session.flush()
        return decode(AccountRecord, row)

    async def update(self, account_id: UUID, **changes: Any) -> AccountRecord | None:
        """Partial update; returns None when the account does not exist."""
        row = await self._get(Account, account_id)
        if row is None:
            return None
        if "email" in changes and changes["email"] is not None:
            changes["email"] = normalize_email(changes["email"])
        for key, value in changes.items():
            setattr(row, key, value)
        await self.session.flush()
        return decode(AccountRecord, row)

    async def delete(self, account_id: UUID) -> bool:
        """Delete an account with its enrollments, withdrawals and notifications."""
        await self.session.execute(delete(Enrollment).where(Enrollment.user_id == account_id))
        await self.session.execute(delete(Withdrawal).where(Withdrawal.user_id == account_id))
        await self.session.execute(delete(Notification).where(Notification.user_id == account_id))
        await self.session.execute(
            delete(BalanceEntry).where(BalanceEntry.account_id == account_id)
        )
        await self.session.execute(
            delete(EmployeeDetails).where(EmployeeDetails.user_id == account_id)
        )
        result = await self.session.execute(delete(Account).where(Account.id == account_id))
        return result.rowcount > 0

    async def balance_of(self, account_id: UUID) -> Decimal | None:
        result = await self.session.execute(
            select(Account.balance).where(Account.id == account_id)
        )
        return result.scalar_one_or_none()

    async def try_debit(self, account_id: UUID, amount: Decimal) -> bool:
        """Subtract ``amount`` only if the balance covers it."""
        result = await self.session.execute(
            update(Account)
            .where(Account.id == account_id, Account.balance >= amount)
            .values(balance=Account.balance - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def credit(self, account_id: UUID, amount: Decimal) -> bool:
        result = await self.session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class EmployeeDetailsStore(_TableStore):
    """Extended worker profiles (``employee_details``)."""

    async def get(self, user_id: UUID) -> EmployeeDetailsRecord | None:
        row = await self._get(EmployeeDetails, user_id)
        return decode(EmployeeDetailsRecord, row) if row is not None else None

    async def save(self, record: EmployeeDetailsRecord) -> EmployeeDetailsRecord:
        values = record.model_dump()
        row = await self._get(EmployeeDetails, record.user_id)
        if row is None:
            row = EmployeeDetails(**values)
            self.session.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
        await self.session.flush()
        return decode(EmployeeDetailsRecord, row)


class AdminAuthStore(_TableStore):
    """Admin credentials (``admin_auth``)."""

    async def verify(self, email: str, password: str) -> bool:
        row = await self._scalar_one_or_none(
            select(AdminCredential).where(AdminCredential.email == normalize_email(email))
        )
        if row is None:
            return False
        return hmac.compare_digest(row.password.encode(), (password or "").strip().encode())

    async def add(self, email: str, password: str) -> None:
        self.session.add(AdminCredential(email=normalize_email(email), password=password.strip()))
        await self.session.flush()


# ============================================================================
# Notifications
# ============================================================================


class NotificationStore(_TableStore):
    """Notifications table."""

    async def get(self, notification_id: UUID) -> NotificationRecord | None:
        row = await self._get(Notification, notification_id)
        return decode(NotificationRecord, row) if row is not None else None

    async def list_for_user(self, user_id: UUID) -> list[NotificationRecord]:
        rows = await self._scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        return decode_all(NotificationRecord, rows)

    async def add_many(self, items: list[dict[str, Any]]) -> int:
        if not items:
            return 0
        now = utcnow()
        self.session.add_all(
            [
                Notification(
                    id=uuid4(),
                    is_read=False,
                    created_at=item.pop("created_at", now),
                    **item,
                )
                for item in items
            ]
        )
        await self.session.flush()
        return len(items)

    async def add(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: str,
        event_id: UUID | None = None,
    ) -> None:
        await self.add_many(
            [
                {
                    "user_id": user_id,
                    "title": title,
                    "message": message,
                    "type": type,
                    "event_id": event_id,
                }
            ]
        )

    async def broadcast_new_job(self, job: JobRecord) -> int:
        """Send a NEW_EVENT notification to every worker.

        Carries no idempotency key: saving the same new job twice in separate
        transactions notifies twice.
        """
        result = await self.session.execute(
            select(Account.id).where(Account.role == Role.WORKER)
        )
        worker_ids = list(result.scalars().all())
        sent = await self.add_many(
            [
                {
                    "user_id": worker_id,
                    "title": "New Event Posted",
                    "message": f"A new event '{job.title}' has been posted. Check it now.",
                    "type": NotificationType.NEW_EVENT,
                    "event_id": job.id,
                }
                for worker_id in worker_ids
            ]
        )
        logger.info("Broadcast new job %s to %d worker(s)", job.id, sent)
        return sent

    async def cleanup_older_than(self, days: int, now: datetime | None = None) -> int:
        cutoff = (now or utcnow()) - timedelta(days=days)
        result = await self.session.execute(
            delete(Notification).where(Notification.created_at < cutoff)
        )
        return result.rowcount

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def mark_read(self, notification_id: UUID) -> bool:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, notification_id: UUID) -> bool:
        result = await self.session.execute(
            delete(Notification).where(Notification.id == notification_id)
        )
        return result.rowcount == 1


# ============================================================================
# Jobs and enrollments
# ============================================================================


class JobStore(_TableStore):
    """Jobs table."""

    def __init__(self, session: AsyncSession, notifications: NotificationStore):
        super().__init__(session)
        self.notifications = notifications

    async def get_all(self) -> list[JobRecord]:
        rows = await self._scalars(select(Job).order_by(Job.date.asc(), Job.created_at.asc()))
        return decode_all(JobRecord, rows)

    async def get(self, job_id: UUID) -> JobRecord | None:
        row = await self._get(Job, job_id)
        return decode(JobRecord, row) if row is not None else None

    async def save(self, record: JobRecord) -> JobRecord:
        """Upsert a job; the first insert notifies every worker."""
        values = record.model_dump(exclude_unset=True)
        values["id"] = record.id
        if "status" in values:
            values["status"] = JobStatus(values["status"]).value

        row = await self._get(Job, record.id)
        created = row is None
        if row is None:
            row = Job(**values)
            self.session.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
        await self.session.flush()
        saved = decode(JobRecord, row)

        if created:
            await self.notifications.broadcast_new_job(saved)
        return saved

    async def update(self, job_id: UUID, **changes: Any) -> JobRecord | None:
        row = await self._get(Job, job_id)
        if row is None:
            return None
        if "status" in changes:
            changes["status"] = JobStatus(changes["status"]).value
        for key, value in changes.items():
            setattr(row, key, value)
        await self.session.flush()
        return decode(JobRecord, row)

    async def delete(self, job_id: UUID) -> bool:
        """Delete a job and every enrollment that references it."""
        await self.session.execute(delete(Enrollment).where(Enrollment.job_id == job_id))
        result = await self.session.execute(delete(Job).where(Job.id == job_id))
        return result.rowcount > 0

    async def try_increment_enrolled(self, job_id: UUID) -> bool:
        """Take one seat on an open job that still has capacity."""
        result = await self.session.execute(
            update(Job)
            .where(
                Job.id == job_id,
                Job.status == JobStatus.OPEN.value,
                Job.enrolled_count < Job.max_workers,
            )
            .values(enrolled_count=Job.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def decrement_enrolled(self, job_id: UUID) -> bool:
        """Release one seat; the count never drops below zero."""
        result = await self.session.execute(
            update(Job)
            .where(Job.id == job_id, Job.enrolled_count > 0)
            .values(enrolled_count=Job.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def enrollment_counts(self) -> dict[UUID, int]:
        """Actual enrollment rows per job id."""
        result = await self.session.execute(
            select(Enrollment.job_id, func.count()).group_by(Enrollment.job_id)
        )
        return {job_id: count for job_id, count in result.all()}


class EnrollmentStore(_TableStore):
    """Enrollments table."""

    async def get_all(self) -> list[EnrollmentRecord]:
        rows = await self._scalars(select(Enrollment).order_by(Enrollment.enrolled_at))
        return decode_all(EnrollmentRecord, rows)

    async def get_for(self, user_id: UUID, job_id: UUID) -> EnrollmentRecord | None:
        row = await self._scalar_one_or_none(
            select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.job_id == job_id)
        )
        return decode(EnrollmentRecord, row) if row is not None else None

    async def list_for_job(self, job_id: UUID) -> list[EnrollmentRecord]:
        rows = await self._scalars(
            select(Enrollment).where(Enrollment.job_id == job_id).order_by(Enrollment.enrolled_at)
        )
        return decode_all(EnrollmentRecord, rows)

    async def list_for_user(self, user_id: UUID) -> list[EnrollmentRecord]:
        rows = await self._scalars(
            select(Enrollment)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.enrolled_at)
        )
        return decode_all(EnrollmentRecord, rows)

    async def add(self, user_id: UUID, job_id: UUID) -> EnrollmentRecord:
        row = Enrollment(id=uuid4(), user_id=user_id, job_id=job_id, enrolled_at=utcnow())
        self.session.add(row)
        await self.session.flush()
        return decode(EnrollmentRecord, row)

    async def delete_by_user_and_job(self, user_id: UUID, job_id: UUID) -> bool:
        result = await self.session.execute(
            delete(Enrollment).where(Enrollment.user_id == user_id, Enrollment.job_id == job_id)
        )
        return result.rowcount > 0

    async def delete_by_job(self, job_id: UUID) -> int:
        result = await self.session.execute(delete(Enrollment).where(Enrollment.job_id == job_id))
        return result.rowcount

    async def mark_paid(self, enrollment_id: UUID) -> bool:
        """Flip the paid flag once; False if already paid or missing."""
        result = await self.session.execute(
            update(Enrollment)
            .where(Enrollment.id == enrollment_id, Enrollment.paid.is_(False))
            .values(paid=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


# ============================================================================
# Withdrawals and balance history
# ============================================================================


class WithdrawalStore(_TableStore):
    """Withdrawal requests table."""

    async def get_all(self) -> list[WithdrawalRecord]:
        rows = await self._scalars(select(Withdrawal).order_by(Withdrawal.created_at.desc()))
        return decode_all(WithdrawalRecord, rows)

    async def get(self, withdrawal_id: UUID) -> WithdrawalRecord | None:
        row = await self._get(Withdrawal, withdrawal_id)
        return decode(WithdrawalRecord, row) if row is not None else None

    async def list_for_user(self, user_id: UUID) -> list[WithdrawalRecord]:
        rows = await self._scalars(
            select(Withdrawal)
            .where(Withdrawal.user_id == user_id)
            .order_by(Withdrawal.created_at.desc())
        )
        return decode_all(WithdrawalRecord, rows)

    async def add(self, user_id: UUID, amount: Decimal) -> WithdrawalRecord:
        row = Withdrawal(
            id=uuid4(),
            user_id=user_id,
            amount=amount,
            status=PayoutStatus.PENDING.value,
            created_at=utcnow(),
        )
        self.session.add(row)
        await self.session.flush()
        return decode(WithdrawalRecord, row)

    async def transition_status(
        self, withdrawal_id: UUID, from_status: PayoutStatus, to_status: PayoutStatus
    ) -> bool:
        """Compare-and-set the status; False when it was not ``from_status``."""
        result = await self.session.execute(
            update(Withdrawal)
            .where(Withdrawal.id == withdrawal_id, Withdrawal.status == from_status.value)
            .values(status=to_status.value, resolved_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class BalanceEntryStore(_TableStore):
    """Append-only balance history."""

    async def add(
        self,
        account_id: UUID,
        kind: str,
        amount: Decimal,
        balance_after: Decimal,
        withdrawal_id: UUID | None = None,
        job_id: UUID | None = None,
        memo: str | None = None,
    ) -> BalanceEntryRecord:
        row = BalanceEntry(
            id=uuid4(),
            account_id=account_id,
            kind=kind,
            amount=amount,
            balance_after=balance_after,
            withdrawal_id=withdrawal_id,
            job_id=job_id,
            memo=memo,
            created_at=utcnow(),
        )
        self.session.add(row)
        await self.session.flush()
        return decode(BalanceEntryRecord, row)

    async def list_for_account(self, account_id: UUID) -> list[BalanceEntryRecord]:
        rows = await self._scalars(
            select(BalanceEntry)
            .where(BalanceEntry.account_id == account_id)
            .order_by(BalanceEntry.created_at.asc())
        )
        return decode_all(BalanceEntryRecord, rows)


class DataStore:
    """All table stores bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.accounts = AccountStore(session)
        self.profiles = EmployeeDetailsStore(session)
        self.admins = AdminAuthStore(session)
        self.notifications = NotificationStore(session)
        self.jobs = JobStore(session, self.notifications)
        self.enrollments = EnrollmentStore(session)
        self.withdrawals = WithdrawalStore(session)
        self.ledger = BalanceEntryStore(session)
