"""Pydantic schemas for API request/response models."""

from __future__ import annotations

import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from crewx.records import AccountRecord, EnrollmentRecord, Record
from crewx.services.state_machine import JobStatus


class Schema(BaseModel):
    """Base request schema: accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    detail: str
    code: str


class MessageResponse(BaseModel):
    status: str
    count: int | None = None


# ============================================================================
# Auth schemas
# ============================================================================


class ExternalLoginRequest(Schema):
    """Identity already verified by the external sign-in provider."""

    email: str
    display_name: str | None = None
    external_id: UUID | None = None


class AdminLoginRequest(Schema):
    email: str
    password: str


class AccountResponse(Record):
    """Account as returned to clients; never carries the password."""

    id: UUID
    name: str
    email: str
    phone: str | None = None
    role: str
    balance: Decimal
    qr_code: str | None = None
    age: int | None = None
    experience: int | None = None

    @classmethod
    def of(cls, account: AccountRecord) -> AccountResponse:
        return cls.model_validate(account)


class SessionResponse(Record):
    token: str
    account: AccountResponse
    needs_onboarding: bool = False


class OnboardingRequest(Schema):
    name: str
    phone: str
    age: int = Field(gt=0)
    experience: int = Field(default=0, ge=0)
    place: str


# ============================================================================
# Account schemas
# ============================================================================


class ProfileUpdate(Schema):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    age: int | None = Field(default=None, ge=0)
    experience: int | None = Field(default=None, ge=0)
    password: str | None = None


class QrUploadRequest(Schema):
    """Base64 image payload; a ``data:`` URL prefix is accepted and stripped."""

    image: str
    mime_type: str = "image/png"


class ManualPaymentRequest(Schema):
    amount: Decimal | None = None
    job_id: UUID | None = None


# ============================================================================
# Job schemas
# ============================================================================


class JobCreate(Schema):
    title: str
    date: datetime.date
    time: str
    location: str
    pay: Decimal
    max_workers: int = Field(gt=0)


class JobUpdate(Schema):
    title: str | None = None
    date: datetime.date | None = None
    time: str | None = None
    location: str | None = None
    pay: Decimal | None = None
    max_workers: int | None = Field(default=None, gt=0)


class JobStatusUpdate(Schema):
    status: JobStatus


class EnrollmentToggleResponse(Record):
    enrolled: bool
    enrollment: EnrollmentRecord | None = None


# ============================================================================
# Payout schemas
# ============================================================================


class PayoutCreate(Schema):
    amount: Decimal
