"""Home-screen counters for the signed-in account."""

from __future__ import annotations

from fastapi import APIRouter

from crewx.api.dependencies import CurrentSession, DbSession
from crewx.exceptions import NotFoundError
from crewx.services import views
from crewx.services.views import AdminDashboard, WorkerDashboard
from crewx.store import DataStore

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=AdminDashboard | WorkerDashboard)
async def dashboard(db: DbSession, current: CurrentSession) -> AdminDashboard | WorkerDashboard:
    """Admin totals for admins, personal counters for workers."""
    store = DataStore(db)
    jobs = await store.jobs.get_all()
    enrollments = await store.enrollments.get_all()
    withdrawals = await store.withdrawals.get_all()

    if current.is_admin:
        return views.admin_dashboard(
            await store.accounts.get_all(), jobs, enrollments, withdrawals
        )

    account = await store.accounts.get(current.account_id)
    if account is None:
        raise NotFoundError("Account", current.account_id)
    return views.worker_dashboard(
        account,
        jobs,
        enrollments,
        withdrawals,
        await store.notifications.list_for_user(account.id),
    )
