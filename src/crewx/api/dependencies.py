"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crewx.exceptions import AuthenticationError, PermissionDeniedError
from crewx.records import Role
from crewx.services.qr_verifier import QrVerifier
from crewx.services.session_manager import Session, SessionManager

SESSION_HEADER = "X-Session-Token"


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_qr_verifier(request: Request) -> QrVerifier:
    return request.app.state.qr_verifier


async def get_current_session(
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    x_session_token: Annotated[str | None, Header()] = None,
) -> Session:
    """Resolve the signed-in session from the session token header."""
    if not x_session_token:
        raise AuthenticationError(f"{SESSION_HEADER} header is required")
    session = sessions.load(x_session_token)
    if session is None:
        raise AuthenticationError("Session expired or unknown, please sign in again")
    return session


async def require_admin(
    session: Annotated[Session, Depends(get_current_session)],
) -> Session:
    if session.role != Role.ADMIN:
        raise PermissionDeniedError("Administrator access required")
    return session


async def require_worker(
    session: Annotated[Session, Depends(get_current_session)],
) -> Session:
    if session.role != Role.WORKER:
        raise PermissionDeniedError("Worker access required")
    return session


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
Verifier = Annotated[QrVerifier, Depends(get_qr_verifier)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
AdminSession = Annotated[Session, Depends(require_admin)]
WorkerSession = Annotated[Session, Depends(require_worker)]
