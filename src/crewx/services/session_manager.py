"""Explicit sign-in sessions with load/save/clear lifecycle hooks."""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from uuid import UUID

from crewx.models import utcnow
from crewx.records import AccountRecord, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """The signed-in identity a client presents with its token."""

    token: str
    account_id: UUID
    email: str
    role: str
    issued_at: datetime = field(default_factory=utcnow)
    last_seen_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class SessionManager:
    """Owns every live session.

    Sessions are created by ``start`` after a successful sign-in, resolved
    with ``load`` on each request, refreshed by ``save`` and ended by
    ``clear``. Sessions idle for longer than the TTL are dropped on load.
    """

    def __init__(self, ttl_minutes: int = 720):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def start(self, account: AccountRecord) -> Session:
        session = Session(
            token=secrets.token_urlsafe(32),
            account_id=account.id,
            email=account.email,
            role=account.role,
        )
        self.save(session)
        logger.info("Started session for %s", account.id)
        return session

    def load(self, token: str | None) -> Session | None:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            now = utcnow()
            if now - session.last_seen_at > self.ttl:
                del self._sessions[token]
                logger.info("Session for %s expired", session.account_id)
                return None
            session = replace(session, last_seen_at=now)
            self._sessions[token] = session
            return session

    def save(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.token] = session

    def clear(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def clear_account(self, account_id: UUID) -> int:
        """End every session of an account, e.g. after it is deleted."""
        with self._lock:
            tokens = [t for t, s in self._sessions.items() if s.account_id == account_id]
            for token in tokens:
                del self._sessions[token]
        return len(tokens)
