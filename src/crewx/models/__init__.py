"""ORM models for the CrewX tables."""

from crewx.models.account import Account, AdminCredential, EmployeeDetails
from crewx.models.base import Base, TimestampMixin, utcnow
from crewx.models.job import Enrollment, Job
from crewx.models.notification import Notification
from crewx.models.payout import BalanceEntry, Withdrawal

__all__ = [
    "Account",
    "AdminCredential",
    "BalanceEntry",
    "Base",
    "EmployeeDetails",
    "Enrollment",
    "Job",
    "Notification",
    "TimestampMixin",
    "Withdrawal",
    "utcnow",
]
