"""Tests for sign-in, onboarding and profile edits."""

from uuid import uuid4

import pytest

from crewx.exceptions import AuthenticationError, NotFoundError, ValidationError
from crewx.records import Role
from crewx.services.identity import IdentityService


@pytest.fixture
def identity(session) -> IdentityService:
    return IdentityService(session)


class TestExternalIdentity:
    async def test_first_sign_in_provisions_worker(self, identity, store):
        external_id = uuid4()

        result = await identity.sync_external_identity(
            "Meera@Gmail.com", "Meera Rao", external_id=external_id
        )

        assert result.created is True
        assert result.needs_onboarding is True
        assert result.account.id == external_id
        assert result.account.email == "meera@gmail.com"
        assert result.account.role == Role.WORKER
        assert (await store.accounts.get(external_id)).balance == 0

    async def test_missing_display_name_defaults(self, identity):
        result = await identity.sync_external_identity("anon@example.com", "  ")

        assert result.account.name == "Worker"

    async def test_repeat_sign_in_reuses_account(self, identity, make_worker):
        worker = await make_worker(email="ravi@example.com", balance="75.00")

        result = await identity.sync_external_identity("RAVI@example.com", "Someone Else")

        assert result.created is False
        assert result.account.id == worker.id
        assert result.account.name == worker.name
        assert result.account.balance == worker.balance

    async def test_invalid_email_rejected(self, identity):
        with pytest.raises(ValidationError):
            await identity.sync_external_identity("not-an-email", "X")

    async def test_admin_email_cannot_sign_in_externally(self, identity, make_admin):
        await make_admin("boss@crewx.in")

        with pytest.raises(AuthenticationError):
            await identity.sync_external_identity("Boss@CrewX.in", "Boss")

    async def test_external_id_linked_to_other_email(self, identity, store, make_worker):
        worker = await make_worker(email="first@example.com")

        with pytest.raises(AuthenticationError):
            await identity.sync_external_identity("second@example.com", "X", external_id=worker.id)

        assert await store.accounts.get_by_email("second@example.com") is None
        assert (await store.accounts.get(worker.id)).email == "first@example.com"


class TestAdminLogin:
    async def test_first_login_provisions_admin(self, identity, store):
        await identity.register_admin("boss@crewx.in", "letmein")

        account = await identity.admin_login(" Boss@CrewX.in ", "letmein ")

        assert account.role == Role.ADMIN
        assert account.name == "Admin"
        assert (await store.accounts.get_by_email("boss@crewx.in")).id == account.id

    async def test_second_login_returns_same_account(self, identity):
        await identity.register_admin("boss@crewx.in", "letmein")

        first = await identity.admin_login("boss@crewx.in", "letmein")
        second = await identity.admin_login("boss@crewx.in", "letmein")

        assert first.id == second.id

    async def test_wrong_password(self, identity):
        await identity.register_admin("boss@crewx.in", "letmein")

        with pytest.raises(AuthenticationError):
            await identity.admin_login("boss@crewx.in", "nope")

    async def test_worker_email_cannot_become_admin(self, identity, make_worker):
        await make_worker(email="shared@crewx.in")
        await identity.register_admin("shared@crewx.in", "letmein")

        with pytest.raises(AuthenticationError):
            await identity.admin_login("shared@crewx.in", "letmein")


class TestOnboarding:
    async def test_profile_saved_and_mirrored(self, identity, store, make_worker):
        worker = await make_worker(name="Worker")

        account = await identity.complete_onboarding(
            worker.id,
            name="Kiran Reddy",
            phone="9123456780",
            age=22,
            place="Kukatpally",
            experience=3,
        )

        assert account.name == "Kiran Reddy"
        assert account.phone == "9123456780"
        assert account.age == 22
        assert account.experience == 3
        details = await store.profiles.get(worker.id)
        assert details.place == "Kukatpally"
        assert details.email == worker.email

        again = await identity.sync_external_identity(worker.email)
        assert again.needs_onboarding is False

    async def test_bad_phone_rejected(self, identity, make_worker):
        worker = await make_worker()

        with pytest.raises(ValidationError) as exc_info:
            await identity.complete_onboarding(
                worker.id, name="K", phone="12345", age=22, place="X"
            )
        assert exc_info.value.field == "phone"

    async def test_unknown_account(self, identity):
        with pytest.raises(NotFoundError):
            await identity.complete_onboarding(
                uuid4(), name="K", phone="9123456780", age=22, place="X"
            )


class TestUpdateProfile:
    async def test_updates_allowed_fields(self, identity, make_worker):
        worker = await make_worker()

        account = await identity.update_profile(
            worker.id, {"name": " Asha ", "phone": "9000000001", "age": None}
        )

        assert account.name == "Asha"
        assert account.phone == "9000000001"
        assert account.age is None

    @pytest.mark.parametrize("field", ["balance", "role", "qr_code"])
    async def test_protected_fields_rejected(self, identity, make_worker, field):
        worker = await make_worker()

        with pytest.raises(ValidationError):
            await identity.update_profile(worker.id, {field: "x"})

    async def test_email_must_stay_unique(self, identity, make_worker):
        await make_worker(email="taken@example.com")
        worker = await make_worker()

        with pytest.raises(ValidationError):
            await identity.update_profile(worker.id, {"email": "Taken@example.com"})
