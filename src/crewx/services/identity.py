"""Sign-in, onboarding and self-service profile operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from crewx.exceptions import AuthenticationError, NotFoundError, ValidationError
from crewx.records import AccountRecord, EmployeeDetailsRecord, Role
from crewx.store import DataStore
from crewx.validation import (
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKER_NAME = "Worker"
DEFAULT_ADMIN_NAME = "Admin"

# Fields a signed-in user may change on their own account.
EDITABLE_PROFILE_FIELDS = frozenset({"name", "email", "phone", "age", "experience", "password"})


@dataclass(frozen=True)
class SignInResult:
    """Account resolved by a sign-in, plus whether onboarding is still due."""

    account: AccountRecord
    created: bool
    needs_onboarding: bool


class IdentityService:
    """Maps external identities and admin credentials onto local accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = DataStore(session)

    async def sync_external_identity(
        self,
        email: str,
        display_name: str | None = None,
        external_id: UUID | None = None,
    ) -> SignInResult:
        """Upsert the local account for an identity the provider has signed in.

        New accounts are workers with a zero balance; the provider's user id
        becomes the account id when one is supplied.
        Admin accounts are refused here and must use ``admin_login``.
        """
        normalized = validate_email(email)
        account = await self.store.accounts.get_by_email(normalized)
        if account is not None and account.role == Role.ADMIN:
            logger.warning("Rejected external sign-in for admin account %s", normalized)
            raise AuthenticationError("Administrators must sign in with email and password")
        if (
            account is None
            and external_id is not None
            and await self.store.accounts.get(external_id) is not None
        ):
            logger.warning("External id %s is linked to another email", external_id)
            raise AuthenticationError("External identity is linked to a different email")
        created = account is None
        if account is None:
            account = await self.store.accounts.save(
                AccountRecord(
                    id=external_id or uuid4(),
                    name=(display_name or "").strip() or DEFAULT_WORKER_NAME,
                    email=normalized,
                    role=Role.WORKER,
                )
            )
            logger.info("Provisioned worker account %s for %s", account.id, normalized)
        await self.session.commit()

        needs_onboarding = (
            account.role == Role.WORKER and await self.store.profiles.get(account.id) is None
        )
        return SignInResult(account=account, created=created, needs_onboarding=needs_onboarding)

    async def admin_login(self, email: str, password: str) -> AccountRecord:
        """Check admin credentials and return (auto-provisioning) the admin account."""
        normalized = normalize_email(email)
        if not await self.store.admins.verify(normalized, password):
            logger.warning("Rejected admin login for %s", normalized)
            raise AuthenticationError("Invalid admin email or password")

        account = await self.store.accounts.get_by_email(normalized)
        if account is None:
            account = await self.store.accounts.save(
                AccountRecord(
                    id=uuid4(),
                    name=DEFAULT_ADMIN_NAME,
                    email=normalized,
                    role=Role.ADMIN,
                )
            )
            logger.info("Provisioned admin account %s for %s", account.id, normalized)
        elif account.role != Role.ADMIN:
            raise AuthenticationError("Account is not an administrator")
        await self.session.commit()
        return account

    async def register_admin(self, email: str, password: str) -> None:
        """Store admin credentials (used by the CLI seed command)."""
        await self.store.admins.add(validate_email(email), validate_password(password))
        await self.session.commit()

    async def complete_onboarding(
        self,
        account_id: UUID,
        name: str,
        phone: str,
        age: int,
        place: str,
        experience: int = 0,
    ) -> AccountRecord:
        """Save the extended worker profile and mirror it onto the account."""
        account = await self.store.accounts.get(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        if age is None or age <= 0:
            raise ValidationError("age", "must be a positive number")
        if experience < 0:
            raise ValidationError("experience", "must not be negative")

        details = EmployeeDetailsRecord(
            user_id=account_id,
            name=validate_name(name),
            email=account.email,
            phone_number=validate_phone(phone),
            age=age,
            experience_works=experience,
            place=validate_name(place, "place"),
        )
        await self.store.profiles.save(details)
        updated = await self.store.accounts.update(
            account_id,
            name=details.name,
            phone=details.phone_number,
            age=details.age,
            experience=details.experience_works,
        )
        if updated is None:
            raise NotFoundError("Account", account_id)
        await self.session.commit()
        return updated

    async def update_profile(self, account_id: UUID, changes: dict[str, Any]) -> AccountRecord:
        """Apply self-service edits; balance and role are not editable here."""
        unknown = set(changes) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be changed")

        cleaned: dict[str, Any] = {}
        for key, value in changes.items():
            if value is None:
                continue
            if key == "name":
                value = validate_name(value)
            elif key == "email":
                value = validate_email(value)
                existing = await self.store.accounts.get_by_email(value)
                if existing is not None and existing.id != account_id:
                    raise ValidationError("email", "is already registered")
            elif key == "phone":
                value = validate_phone(value)
            elif key == "password":
                value = validate_password(value)
            elif key in ("age", "experience") and int(value) < 0:
                raise ValidationError(key, "must not be negative")
            cleaned[key] = value

        updated = await self.store.accounts.update(account_id, **cleaned)
        if updated is None:
            raise NotFoundError("Account", account_id)
        await self.session.commit()
        return updated
