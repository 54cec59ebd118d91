"""API routes."""

from crewx.api.routes.accounts import router as accounts_router
from crewx.api.routes.auth import router as auth_router
from crewx.api.routes.dashboard import router as dashboard_router
from crewx.api.routes.health import router as health_router
from crewx.api.routes.jobs import router as jobs_router
from crewx.api.routes.notifications import router as notifications_router
from crewx.api.routes.payouts import router as payouts_router

__all__ = [
    "accounts_router",
    "auth_router",
    "dashboard_router",
    "health_router",
    "jobs_router",
    "notifications_router",
    "payouts_router",
]
