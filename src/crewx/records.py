"""Typed records produced by the data access facade.

Rows are decoded with pydantic ``from_attributes`` validation. Records keep
snake_case attribute names in Python and serialize with the camelCase keys the
client uses (``maxWorkers``, ``enrolledCount``, ``qrCode`` ...).
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from crewx.exceptions import RecordDecodeError
from crewx.services.state_machine import JobStatus, PayoutStatus


class Role:
    ADMIN = "ADMIN"
    WORKER = "WORKER"


class NotificationType:
    NEW_EVENT = "NEW_EVENT"
    SHIFT_REMINDER = "SHIFT_REMINDER"
    PAYOUT_UPDATE = "PAYOUT_UPDATE"
    PAYMENT = "PAYMENT"


class Record(BaseModel):
    """Base record: decoded from ORM rows, serialized in camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AccountRecord(Record):
    id: UUID
    name: str
    email: str
    password: str | None = None
    phone: str | None = None
    role: str = Role.WORKER
    balance: Decimal = Decimal("0.00")
    qr_code: str | None = None
    age: int | None = None
    experience: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class EmployeeDetailsRecord(Record):
    user_id: UUID
    name: str
    email: str
    phone_number: str
    age: int
    experience_works: int = 0
    place: str


class JobRecord(Record):
    id: UUID
    title: str
    date: datetime.date
    time: str
    location: str
    pay: Decimal
    max_workers: int
    enrolled_count: int = 0
    status: JobStatus = JobStatus.OPEN
    auto_closed: bool = False

    @property
    def is_full(self) -> bool:
        return self.enrolled_count >= self.max_workers


class EnrollmentRecord(Record):
    id: UUID
    user_id: UUID
    job_id: UUID
    enrolled_at: datetime.datetime
    paid: bool = False


class WithdrawalRecord(Record):
    id: UUID
    user_id: UUID
    amount: Decimal
    status: PayoutStatus = PayoutStatus.PENDING
    created_at: datetime.datetime
    resolved_at: datetime.datetime | None = None


class NotificationRecord(Record):
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    event_id: UUID | None = None
    is_read: bool = False
    created_at: datetime.datetime


class BalanceEntryRecord(Record):
    id: UUID
    account_id: UUID
    kind: str
    amount: Decimal
    balance_after: Decimal
    withdrawal_id: UUID | None = None
    job_id: UUID | None = None
    memo: str | None = None
    created_at: datetime.datetime


R = TypeVar("R", bound=Record)


def decode(record_type: type[R], row: Any) -> R:
    """Decode one ORM row into a typed record or raise RecordDecodeError."""
    try:
        return record_type.model_validate(row)
    except PydanticValidationError as exc:
        raise RecordDecodeError(record_type.__name__, str(exc)) from exc


def decode_all(record_type: type[R], rows: Any) -> list[R]:
    return [decode(record_type, row) for row in rows]
