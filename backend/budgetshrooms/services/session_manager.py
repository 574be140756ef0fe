"""Opaque server-side session tokens with sliding cookie expiry and lazy cleanup."""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from ..errors import UnauthorizedError
from ..models import ActiveSession

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class SessionStore(ABC):
    """Persistence contract for session rows keyed by token."""

    @abstractmethod
    async def create(self, token: str, user_id: UUID, expires_at: datetime) -> None:
        ...

    @abstractmethod
    async def find_with_user(self, token: str) -> ActiveSession | None:
        """Return the session joined with its user, or None."""

    @abstractmethod
    async def delete_by_token(self, token: str) -> int:
        """Delete every row with exactly this token and return the count."""


class CredentialTransport(ABC):
    """Client-held credential storage, i.e. a cookie jar for one request."""

    @abstractmethod
    def read(self, name: str) -> str | None:
        ...

    @abstractmethod
    def set(
        self,
        name: str,
        value: str,
        *,
        expires: datetime,
        httponly: bool,
        secure: bool,
        samesite: str,
        path: str,
    ) -> None:
        ...

    @abstractmethod
    def delete(self, name: str, *, path: str) -> None:
        ...


@dataclass(frozen=True)
class SessionConfig:
    ttl: timedelta
    cookie_name: str
    secure: bool
    cookie_path: str = "/"


def _utcnow() -> datetime:
    """Wrapper for deterministic tests."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        transport: CredentialTransport,
        config: SessionConfig,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.transport = transport
        self.config = config
        self._now = now

    def _clear_cookie(self) -> None:
        self.transport.delete(self.config.cookie_name, path=self.config.cookie_path)

    async def create_session(self, user_id: UUID) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        expires_at = self._now() + self.config.ttl

        await self.store.create(token, user_id, expires_at)

        self.transport.set(
            self.config.cookie_name,
            token,
            expires=expires_at,
            httponly=True,
            secure=self.config.secure,
            samesite="lax",
            path=self.config.cookie_path,
        )
        logger.info("Session created for user %s", user_id)
        return token

    async def get_session(self) -> ActiveSession | None:
        token = self.transport.read(self.config.cookie_name)
        if not token:
            return None

        session = await self.store.find_with_user(token)

        # Expired rows are never valid, even before they are swept.
        if session is None or _as_utc(session.expires_at) < self._now():
            removed = await self.store.delete_by_token(token)
            self._clear_cookie()
            if removed:
                logger.info("Removed expired session for user %s", session.user_id if session else "unknown")
            return None

        return session

    async def require_session(self) -> ActiveSession:
        session = await self.get_session()
        if session is None:
            raise UnauthorizedError("No active session")
        return session

    async def delete_session(self) -> None:
        token = self.transport.read(self.config.cookie_name)
        if not token:
            return

        removed = await self.store.delete_by_token(token)
        self._clear_cookie()
        logger.info("Session signed out (%d row(s) removed)", removed)
