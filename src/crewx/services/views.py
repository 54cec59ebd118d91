"""Derived views over fetched collections.

Every function here is pure: it takes the full collections a screen fetched
and filters, sorts or aggregates them in memory.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from crewx.records import (
    AccountRecord,
    EnrollmentRecord,
    JobRecord,
    NotificationRecord,
    Record,
    Role,
    WithdrawalRecord,
)
from crewx.services.state_machine import JobStatus, PayoutStatus


class WorkerDashboard(Record):
    """Counters shown on a worker's home screen."""

    balance: Decimal
    enrolled_jobs: int
    upcoming_jobs: list[JobRecord]
    pending_payouts: int
    pending_payout_total: Decimal
    unread_notifications: int


class AdminDashboard(Record):
    """Counters shown on the admin home screen."""

    total_workers: int
    open_jobs: int
    closed_jobs: int
    completed_jobs: int
    total_enrollments: int
    unpaid_enrollments: int
    pending_payouts: int
    pending_payout_total: Decimal
    outstanding_balance: Decimal


def _by_date(job: JobRecord) -> tuple[datetime.date, str]:
    return (job.date, job.time)


def open_jobs(jobs: Iterable[JobRecord]) -> list[JobRecord]:
    """Jobs a worker can still enroll in, soonest first."""
    return sorted(
        (job for job in jobs if job.status == JobStatus.OPEN and not job.is_full),
        key=_by_date,
    )


def enrolled_job_ids(enrollments: Iterable[EnrollmentRecord], worker_id: UUID) -> set[UUID]:
    return {e.job_id for e in enrollments if e.user_id == worker_id}


def jobs_for_worker(
    jobs: Iterable[JobRecord],
    enrollments: Iterable[EnrollmentRecord],
    worker_id: UUID,
) -> list[JobRecord]:
    """The worker's own enrolled jobs, soonest first."""
    mine = enrolled_job_ids(enrollments, worker_id)
    return sorted((job for job in jobs if job.id in mine), key=_by_date)


def pending_payouts(withdrawals: Iterable[WithdrawalRecord]) -> list[WithdrawalRecord]:
    """PENDING withdrawal requests, oldest first so they are resolved in order."""
    return sorted(
        (w for w in withdrawals if w.status == PayoutStatus.PENDING),
        key=lambda w: w.created_at,
    )


def search_staff(accounts: Iterable[AccountRecord], query: str) -> list[AccountRecord]:
    """Workers whose name, email or phone contains ``query`` (case-insensitive)."""
    needle = (query or "").strip().lower()
    workers = [a for a in accounts if a.role == Role.WORKER]
    if needle:
        workers = [
            a
            for a in workers
            if needle in a.name.lower()
            or needle in a.email.lower()
            or needle in (a.phone or "")
        ]
    return sorted(workers, key=lambda a: a.name.lower())


def worker_dashboard(
    account: AccountRecord,
    jobs: Iterable[JobRecord],
    enrollments: Iterable[EnrollmentRecord],
    withdrawals: Iterable[WithdrawalRecord],
    notifications: Iterable[NotificationRecord],
    today: datetime.date | None = None,
) -> WorkerDashboard:
    today = today or datetime.date.today()
    mine = jobs_for_worker(jobs, enrollments, account.id)
    pending = [w for w in pending_payouts(withdrawals) if w.user_id == account.id]
    return WorkerDashboard(
        balance=account.balance,
        enrolled_jobs=len(mine),
        upcoming_jobs=[job for job in mine if job.date >= today],
        pending_payouts=len(pending),
        pending_payout_total=sum((w.amount for w in pending), Decimal("0.00")),
        unread_notifications=sum(
            1 for n in notifications if n.user_id == account.id and not n.is_read
        ),
    )


def admin_dashboard(
    accounts: Iterable[AccountRecord],
    jobs: Iterable[JobRecord],
    enrollments: Iterable[EnrollmentRecord],
    withdrawals: Iterable[WithdrawalRecord],
) -> AdminDashboard:
    jobs = list(jobs)
    enrollments = list(enrollments)
    workers = [a for a in accounts if a.role == Role.WORKER]
    pending = pending_payouts(withdrawals)
    return AdminDashboard(
        total_workers=len(workers),
        open_jobs=sum(1 for job in jobs if job.status == JobStatus.OPEN),
        closed_jobs=sum(1 for job in jobs if job.status == JobStatus.CLOSED),
        completed_jobs=sum(1 for job in jobs if job.status == JobStatus.COMPLETED),
        total_enrollments=len(enrollments),
        unpaid_enrollments=sum(1 for e in enrollments if not e.paid),
        pending_payouts=len(pending),
        pending_payout_total=sum((w.amount for w in pending), Decimal("0.00")),
        outstanding_balance=sum((a.balance for a in workers), Decimal("0.00")),
    )
