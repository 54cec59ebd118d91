"""Bookkeeping operations: enrollment, payouts and manual payments.

Each public operation runs as one database transaction. Seat counts and
balances are changed with guarded UPDATE statements, so a caller holding a
stale copy of a job or account can never over-enroll a job or overdraw a
balance, and a failure part-way through rolls every write back.

Policies:
- A job whose enrolled count reaches capacity is closed automatically and
  flagged ``auto_closed``; a later cancel reopens only such jobs.
- A payout request debits exactly the requested amount. Rejection credits it
  back; approval leaves the balance untouched.
"""

from __future__ import annotations

import datetime
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crewx.exceptions import (
    AlreadyEnrolledError,
    AlreadyPaidError,
    CrewXError,
    InsufficientBalanceError,
    JobClosedError,
    JobFullError,
    NotEnrolledError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from crewx.records import (
    AccountRecord,
    EnrollmentRecord,
    JobRecord,
    NotificationType,
    Role,
    WithdrawalRecord,
)
from crewx.services.state_machine import (
    InvalidTransitionError,
    JobStateMachine,
    JobStatus,
    PayoutStateMachine,
    PayoutStatus,
)
from crewx.store import DataStore
from crewx.validation import format_money, validate_amount, validate_name

logger = logging.getLogger(__name__)


class BookkeepingService:
    """Service for the multi-step operations that move seats and money.

    Operations:
    - enroll / cancel / toggle_enrollment: seat bookkeeping on a job
    - request_payout / resolve_payout: withdrawal lifecycle
    - record_manual_payment: admin credit to a worker
    - create_job / update_job / set_job_status / delete_job: job administration
    - delete_account: account removal that releases held seats
    - check_consistency: audit of the stored counters and balances
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = DataStore(session)

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[None, None]:
        try:
            yield
            await self.session.commit()
        except CrewXError as exc:
            await self.session.rollback()
            logger.warning("%s rejected: %s", operation, exc)
            raise
        except Exception:
            await self.session.rollback()
            logger.exception("%s rolled back", operation)
            raise

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _require_worker(self, worker_id: UUID) -> AccountRecord:
        account = await self.store.accounts.get(worker_id)
        if account is None:
            raise NotFoundError("Account", worker_id)
        if account.role != Role.WORKER:
            raise PermissionDeniedError("Only worker accounts can hold enrollments and balances")
        return account

    async def _require_job(self, job_id: UUID) -> JobRecord:
        job = await self.store.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        return job

    async def _require_withdrawal(self, withdrawal_id: UUID) -> WithdrawalRecord:
        withdrawal = await self.store.withdrawals.get(withdrawal_id)
        if withdrawal is None:
            raise NotFoundError("Withdrawal", withdrawal_id)
        return withdrawal

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    async def enroll(self, worker_id: UUID, job_id: UUID) -> EnrollmentRecord:
        """Enroll a worker in a job, closing the job when it becomes full."""
        async with self._transaction("enroll"):
            await self._require_worker(worker_id)
            job = await self._require_job(job_id)

            if await self.store.enrollments.get_for(worker_id, job_id) is not None:
                raise AlreadyEnrolledError(f"Worker {worker_id} is already enrolled in job {job_id}")
            if not JobStateMachine.accepts_enrollment(job.status):
                raise JobClosedError(f"Job {job_id} is {job.status.value}")

            if not await self.store.jobs.try_increment_enrolled(job_id):
                # Re-read to tell a concurrent close apart from a full job.
                current = await self._require_job(job_id)
                if not JobStateMachine.accepts_enrollment(current.status):
                    raise JobClosedError(f"Job {job_id} is {current.status.value}")
                raise JobFullError(f"Job {job_id} is full")

            try:
                enrollment = await self.store.enrollments.add(worker_id, job_id)
            except IntegrityError as exc:
                raise AlreadyEnrolledError(
                    f"Worker {worker_id} is already enrolled in job {job_id}"
                ) from exc

            job = await self._require_job(job_id)
            if job.is_full:
                JobStateMachine.validate_transition(job.status, JobStatus.CLOSED)
                await self.store.jobs.update(job_id, status=JobStatus.CLOSED, auto_closed=True)

        logger.info(
            "Worker %s enrolled in job %s (%d/%d)",
            worker_id,
            job_id,
            job.enrolled_count,
            job.max_workers,
        )
        return enrollment

    async def cancel(self, worker_id: UUID, job_id: UUID) -> bool:
        """Remove a worker's enrollment.

        Returns False, changing nothing, when no enrollment exists.
        """
        async with self._transaction("cancel"):
            removed = await self.store.enrollments.delete_by_user_and_job(worker_id, job_id)
            if removed:
                await self._release_seat(job_id)

        if removed:
            logger.info("Worker %s cancelled enrollment in job %s", worker_id, job_id)
        return removed

    async def toggle_enrollment(self, worker_id: UUID, job_id: UUID) -> EnrollmentRecord | None:
        """Cancel when enrolled, enroll otherwise. Returns the new enrollment, if any."""
        if await self.store.enrollments.get_for(worker_id, job_id) is not None:
            await self.cancel(worker_id, job_id)
            return None
        return await self.enroll(worker_id, job_id)

    async def _release_seat(self, job_id: UUID) -> None:
        await self.store.jobs.decrement_enrolled(job_id)
        job = await self.store.jobs.get(job_id)
        if job is None:
            return
        if job.status == JobStatus.CLOSED and job.auto_closed and not job.is_full:
            await self.store.jobs.update(job_id, status=JobStatus.OPEN, auto_closed=False)

    # ------------------------------------------------------------------
    # Payouts
    # ------------------------------------------------------------------

    async def request_payout(self, worker_id: UUID, amount: Decimal | str) -> WithdrawalRecord:
        """Reserve ``amount`` from the worker's balance as a PENDING withdrawal."""
        value = validate_amount(amount)
        async with self._transaction("request_payout"):
            worker = await self._require_worker(worker_id)
            if not await self.store.accounts.try_debit(worker_id, value):
                raise InsufficientBalanceError(
                    f"Requested {format_money(value)} exceeds balance {format_money(worker.balance)}"
                )
            withdrawal = await self.store.withdrawals.add(worker_id, value)
            balance = await self.store.accounts.balance_of(worker_id)
            await self.store.ledger.add(
                worker_id,
                "payout_reserved",
                -value,
                balance,
                withdrawal_id=withdrawal.id,
            )

        logger.info("Payout %s of %s requested by %s", withdrawal.id, value, worker_id)
        return withdrawal

    async def resolve_payout(self, withdrawal_id: UUID, approve: bool) -> WithdrawalRecord:
        """Approve or reject a PENDING withdrawal. Rejection refunds the amount."""
        target = PayoutStatus.APPROVED if approve else PayoutStatus.REJECTED
        async with self._transaction("resolve_payout"):
            withdrawal = await self._require_withdrawal(withdrawal_id)
            PayoutStateMachine.validate_transition(withdrawal.status, target)

            if not await self.store.withdrawals.transition_status(
                withdrawal_id, PayoutStatus.PENDING, target
            ):
                raise InvalidTransitionError(
                    withdrawal.status, target, "request was resolved concurrently"
                )

            if PayoutStateMachine.returns_funds(target):
                await self.store.accounts.credit(withdrawal.user_id, withdrawal.amount)
                balance = await self.store.accounts.balance_of(withdrawal.user_id)
                await self.store.ledger.add(
                    withdrawal.user_id,
                    "payout_released",
                    withdrawal.amount,
                    balance,
                    withdrawal_id=withdrawal_id,
                )

            await self.store.notifications.add(
                withdrawal.user_id,
                title=f"Withdrawal {target.value.lower()}",
                message=(
                    f"Your withdrawal of {format_money(withdrawal.amount)} "
                    f"was {target.value.lower()}."
                ),
                type=NotificationType.PAYOUT_UPDATE,
            )
            resolved = await self._require_withdrawal(withdrawal_id)

        logger.info("Payout %s %s", withdrawal_id, target.value)
        return resolved

    async def record_manual_payment(
        self,
        worker_id: UUID,
        amount: Decimal | str | None = None,
        job_id: UUID | None = None,
    ) -> AccountRecord:
        """Credit a worker's balance.

        With ``job_id`` the worker's enrollment in that job is marked paid and
        the amount defaults to the job's pay.
        """
        async with self._transaction("record_manual_payment"):
            await self._require_worker(worker_id)
            if job_id is not None:
                job = await self._require_job(job_id)
                enrollment = await self.store.enrollments.get_for(worker_id, job_id)
                if enrollment is None:
                    raise NotEnrolledError(f"Worker {worker_id} is not enrolled in job {job_id}")
                if not await self.store.enrollments.mark_paid(enrollment.id):
                    raise AlreadyPaidError(f"Worker {worker_id} was already paid for job {job_id}")
                if amount is None:
                    amount = job.pay
            value = validate_amount(amount if amount is not None else 0)

            await self.store.accounts.credit(worker_id, value)
            balance = await self.store.accounts.balance_of(worker_id)
            await self.store.ledger.add(
                worker_id, "manual_payment", value, balance, job_id=job_id
            )
            await self.store.notifications.add(
                worker_id,
                title="Payment received",
                message=f"{format_money(value)} has been added to your wallet.",
                type=NotificationType.PAYMENT,
                event_id=job_id,
            )
            account = await self._require_worker(worker_id)

        logger.info("Recorded payment of %s to %s", value, worker_id)
        return account

    # ------------------------------------------------------------------
    # Admin maintenance
    # ------------------------------------------------------------------

    async def create_job(
        self,
        title: str,
        date: datetime.date,
        time: str,
        location: str,
        pay: Decimal | str,
        max_workers: int,
    ) -> JobRecord:
        """Post a new OPEN job; every worker is notified."""
        if max_workers <= 0:
            raise ValidationError("max_workers", "must be greater than zero")
        record = JobRecord(
            id=uuid4(),
            title=validate_name(title, "title"),
            date=date,
            time=validate_name(time, "time"),
            location=validate_name(location, "location"),
            pay=validate_amount(pay),
            max_workers=max_workers,
        )
        async with self._transaction("create_job"):
            job = await self.store.jobs.save(record)
        logger.info("Created job %s (%s on %s)", job.id, job.title, job.date)
        return job

    async def update_job(self, job_id: UUID, **changes: Any) -> JobRecord:
        """Edit job details. Capacity can never drop below the enrolled count.

        Status is changed through ``set_job_status`` only. A capacity change
        re-applies the auto-close policy.
        """
        if "status" in changes or "enrolled_count" in changes:
            raise ValidationError("status", "cannot be changed by a job edit")
        for field in ("title", "time", "location"):
            if field in changes:
                changes[field] = validate_name(changes[field], field)
        if "pay" in changes:
            changes["pay"] = validate_amount(changes["pay"])

        async with self._transaction("update_job"):
            job = await self._require_job(job_id)
            max_workers = changes.get("max_workers", job.max_workers)
            if max_workers <= 0:
                raise ValidationError("max_workers", "must be greater than zero")
            if max_workers < job.enrolled_count:
                raise ValidationError(
                    "max_workers",
                    f"cannot be below the {job.enrolled_count} enrolled worker(s)",
                )
            if job.status == JobStatus.OPEN and job.enrolled_count >= max_workers:
                changes.update(status=JobStatus.CLOSED, auto_closed=True)
            elif (
                job.status == JobStatus.CLOSED
                and job.auto_closed
                and job.enrolled_count < max_workers
            ):
                changes.update(status=JobStatus.OPEN, auto_closed=False)
            updated = await self.store.jobs.update(job_id, **changes)
            if updated is None:
                raise NotFoundError("Job", job_id)
        return updated

    async def set_job_status(self, job_id: UUID, status: JobStatus | str) -> JobRecord:
        """Manual status change; clears the capacity auto-close flag."""
        target = JobStatus(status)
        async with self._transaction("set_job_status"):
            job = await self._require_job(job_id)
            JobStateMachine.validate_transition(job.status, target)
            updated = await self.store.jobs.update(job_id, status=target, auto_closed=False)
            if updated is None:
                raise NotFoundError("Job", job_id)
        return updated

    async def delete_job(self, job_id: UUID) -> None:
        """Delete a job together with all of its enrollments."""
        async with self._transaction("delete_job"):
            await self._require_job(job_id)
            removed = await self.store.enrollments.delete_by_job(job_id)
            await self.store.jobs.delete(job_id)
        logger.info("Deleted job %s and %d enrollment(s)", job_id, removed)

    async def delete_account(self, account_id: UUID) -> None:
        """Delete an account and everything it owns, releasing its job seats."""
        async with self._transaction("delete_account"):
            if await self.store.accounts.get(account_id) is None:
                raise NotFoundError("Account", account_id)
            for enrollment in await self.store.enrollments.list_for_user(account_id):
                await self.store.enrollments.delete_by_user_and_job(account_id, enrollment.job_id)
                await self._release_seat(enrollment.job_id)
            await self.store.accounts.delete(account_id)
        logger.info("Deleted account %s", account_id)

    async def check_consistency(self) -> list[str]:
        """List stored counters and balances that break the ledger invariants."""
        problems: list[str] = []
        counts = await self.store.jobs.enrollment_counts()
        for job in await self.store.jobs.get_all():
            actual = counts.get(job.id, 0)
            if job.enrolled_count != actual:
                problems.append(
                    f"job {job.id} enrolled_count={job.enrolled_count} but {actual} enrollment(s)"
                )
            if job.enrolled_count > job.max_workers:
                problems.append(f"job {job.id} over capacity ({job.enrolled_count}/{job.max_workers})")
        for account in await self.store.accounts.get_all():
            if account.balance < 0:
                problems.append(f"account {account.id} has negative balance {account.balance}")
        return problems
