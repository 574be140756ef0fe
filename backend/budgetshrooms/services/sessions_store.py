"""Postgres session store and cookie transport used by the session manager."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi import Request, Response

from ..models import ActiveSession
from .session_manager import CredentialTransport, SessionStore
from .users_service import user_from_row

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any


class PostgresSessionStore(SessionStore):
    def __init__(self, connection: AsyncConnection) -> None:
        self.connection = connection

    async def create(self, token: str, user_id: UUID, expires_at: datetime) -> None:
        async with self.connection.cursor() as cursor:
            await cursor.execute(
                """
                INSERT INTO sessions (token, user_id, expires_at)
                VALUES (%s, %s, %s)
                """,
                (token, user_id, expires_at),
            )

    async def find_with_user(self, token: str) -> ActiveSession | None:
        async with self.connection.cursor() as cursor:
            await cursor.execute(
                """
                SELECT s.token, s.user_id, s.expires_at,
                       u.id, u.email, u.name, u.current_budget, u.created_at
                FROM sessions s
                JOIN users u ON u.id = s.user_id
                WHERE s.token = %s
                """,
                (token,),
            )
            row = await cursor.fetchone()

        if row is None:
            return None

        return ActiveSession(
            token=row["token"],
            user_id=row["user_id"],
            expires_at=row["expires_at"],
            user=user_from_row(row),
        )

    async def delete_by_token(self, token: str) -> int:
        async with self.connection.cursor() as cursor:
            await cursor.execute(
                """
                DELETE FROM sessions
                WHERE token = %s
                RETURNING token
                """,
                (token,),
            )
            rows = await cursor.fetchall()

        return len(rows)


class CookieTransport(CredentialTransport):
    """Reads cookies from the incoming request and writes them on the outgoing response."""

    def __init__(self, request: Request, response: Response) -> None:
        self.request = request
        self.response = response

    def read(self, name: str) -> str | None:
        return self.request.cookies.get(name)

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
        self.response.set_cookie(
            key=name,
            value=value,
            expires=expires,
            httponly=httponly,
            secure=secure,
            samesite=samesite,
            path=path,
        )

    def delete(self, name: str, *, path: str) -> None:
        self.response.delete_cookie(key=name, path=path)
