"""Tests for derived views over fetched collections."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from crewx.records import (
    AccountRecord,
    EnrollmentRecord,
    JobRecord,
    NotificationRecord,
    Role,
    WithdrawalRecord,
)
from crewx.services import views
from crewx.services.state_machine import JobStatus, PayoutStatus

TODAY = date(2026, 10, 17)
NOW = datetime(2026, 10, 17, 12, 0)


def job(title="Shift", days=1, status=JobStatus.OPEN, max_workers=2, enrolled=0):
    return JobRecord(
        id=uuid4(),
        title=title,
        date=TODAY + timedelta(days=days),
        time="10:00",
        location="Hall",
        pay=Decimal("500"),
        max_workers=max_workers,
        enrolled_count=enrolled,
        status=status,
    )


def account(name, role=Role.WORKER, balance="0", **extra):
    return AccountRecord(
        id=uuid4(),
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
        balance=Decimal(balance),
        **extra,
    )


def enrollment(user_id, job_id, paid=False):
    return EnrollmentRecord(id=uuid4(), user_id=user_id, job_id=job_id, enrolled_at=NOW, paid=paid)


def withdrawal(user_id, amount, status=PayoutStatus.PENDING, minutes=0):
    return WithdrawalRecord(
        id=uuid4(),
        user_id=user_id,
        amount=Decimal(amount),
        status=status,
        created_at=NOW + timedelta(minutes=minutes),
    )


class TestJobViews:
    def test_open_jobs_excludes_closed_and_full_and_sorts(self):
        later = job("Later", days=5)
        sooner = job("Sooner", days=2)
        closed = job("Closed", status=JobStatus.CLOSED)
        full = job("Full", max_workers=1, enrolled=1)

        assert views.open_jobs([later, closed, full, sooner]) == [sooner, later]

    def test_jobs_for_worker(self):
        worker_id = uuid4()
        mine_late, mine_early, other = job(days=9), job(days=3), job()
        enrollments = [
            enrollment(worker_id, mine_late.id),
            enrollment(worker_id, mine_early.id),
            enrollment(uuid4(), other.id),
        ]

        assert views.enrolled_job_ids(enrollments, worker_id) == {mine_late.id, mine_early.id}
        assert views.jobs_for_worker([mine_late, other, mine_early], enrollments, worker_id) == [
            mine_early,
            mine_late,
        ]


class TestPayoutViews:
    def test_pending_oldest_first(self):
        user = uuid4()
        newer = withdrawal(user, "20", minutes=5)
        older = withdrawal(user, "10", minutes=1)
        done = withdrawal(user, "30", status=PayoutStatus.APPROVED)

        assert views.pending_payouts([newer, done, older]) == [older, newer]


class TestSearchStaff:
    def test_matches_name_email_or_phone_case_insensitively(self):
        asha = account("Asha Rao", phone="9000000001")
        ravi = account("Ravi Kumar", phone="9111111112")
        admin = account("Asha Admin", role=Role.ADMIN)
        staff = [ravi, asha, admin]

        assert views.search_staff(staff, "ASHA") == [asha]
        assert views.search_staff(staff, "ravi.kumar@") == [ravi]
        assert views.search_staff(staff, "91111") == [ravi]
        assert views.search_staff(staff, "") == [asha, ravi]
        assert views.search_staff(staff, "zzz") == []


class TestDashboards:
    def test_worker_dashboard(self):
        me = account("Asha", balance="750.00")
        upcoming, past = job(days=2), job(days=-3)
        notes = [
            NotificationRecord(
                id=uuid4(), user_id=me.id, title="t", message="m", type="PAYMENT",
                is_read=read, created_at=NOW,
            )
            for read in (False, False, True)
        ]

        dash = views.worker_dashboard(
            me,
            [upcoming, past],
            [enrollment(me.id, upcoming.id), enrollment(me.id, past.id)],
            [withdrawal(me.id, "100"), withdrawal(uuid4(), "999")],
            notes,
            today=TODAY,
        )

        assert dash.balance == Decimal("750.00")
        assert dash.enrolled_jobs == 2
        assert dash.upcoming_jobs == [upcoming]
        assert dash.pending_payouts == 1
        assert dash.pending_payout_total == Decimal("100")
        assert dash.unread_notifications == 2
        assert "pendingPayoutTotal" in dash.model_dump(by_alias=True)

    def test_admin_dashboard(self):
        a, b = account("A", balance="100"), account("B", balance="50.50")
        admin = account("Boss", role=Role.ADMIN)
        open_job, closed_job = job(), job(status=JobStatus.CLOSED)
        enrollments = [enrollment(a.id, open_job.id, paid=True), enrollment(b.id, open_job.id)]

        dash = views.admin_dashboard(
            [a, b, admin],
            [open_job, closed_job],
            enrollments,
            [withdrawal(a.id, "25"), withdrawal(b.id, "5", status=PayoutStatus.REJECTED)],
        )

        assert dash.total_workers == 2
        assert dash.open_jobs == 1
        assert dash.closed_jobs == 1
        assert dash.completed_jobs == 0
        assert dash.total_enrollments == 2
        assert dash.unpaid_enrollments == 1
        assert dash.pending_payouts == 1
        assert dash.pending_payout_total == Decimal("25")
        assert dash.outstanding_balance == Decimal("150.50")
