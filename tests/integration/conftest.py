"""Integration test fixtures: the FastAPI app over an in-memory database."""

from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Any
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from crewx.api.app import create_app
from crewx.store import DataStore


class FixedVerifier:
    """QR verifier double whose verdict the test controls."""

    def __init__(self) -> None:
        self.accept = True

    async def is_payment_qr(self, image: bytes, mime_type: str) -> bool:
        return self.accept


@pytest_asyncio.fixture
async def qr_verifier() -> FixedVerifier:
    return FixedVerifier()


@pytest_asyncio.fixture
async def app(settings, session_factory, qr_verifier):
    return create_app(settings=settings, session_factory=session_factory, qr_verifier=qr_verifier)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client, session_factory) -> dict[str, str]:
    """Seed admin credentials and sign in through the API."""
    async with session_factory() as session:
        await DataStore(session).admins.add("admin@crewx.test", "admin123")
        await session.commit()

    response = await client.post(
        "/api/v1/auth/admin", json={"email": "admin@crewx.test", "password": "admin123"}
    )
    assert response.status_code == 200, response.text
    return {"X-Session-Token": response.json()["token"]}


@pytest_asyncio.fixture
async def sign_in_worker(client, session_factory):
    """Sign a worker in through the external identity route, optionally funding them."""

    async def _sign_in(
        email: str = "worker@example.com",
        name: str = "Ravi Kumar",
        balance: Decimal | str | None = None,
    ) -> tuple[dict[str, str], dict[str, Any]]:
        response = await client.post(
            "/api/v1/auth/external", json={"email": email, "displayName": name}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        if balance is not None:
            async with session_factory() as session:
                await DataStore(session).accounts.update(
                    UUID(body["account"]["id"]), balance=Decimal(balance)
                )
                await session.commit()
        return {"X-Session-Token": body["token"]}, body["account"]

    return _sign_in
