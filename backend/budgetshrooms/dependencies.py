from functools import lru_cache
from typing import Any

from fastapi import Depends, HTTPException, Request, Response

from .config import settings
from .database import get_db_connection
from .errors import UnauthorizedError
from .models import ActiveSession
from .services.month_resolver import MonthResolver
from .services.session_manager import SessionConfig, SessionManager
from .services.sessions_store import CookieTransport, PostgresSessionStore


@lru_cache
def get_month_resolver() -> MonthResolver:
    return MonthResolver(settings.display_zone)


def get_session_config() -> SessionConfig:
    return SessionConfig(
        ttl=settings.session_ttl,
        cookie_name=settings.session_cookie_name,
        secure=settings.secure_cookies,
    )


async def get_session_manager(
    request: Request,
    response: Response,
    connection: Any = Depends(get_db_connection),
    config: SessionConfig = Depends(get_session_config),
) -> SessionManager:
    return SessionManager(
        PostgresSessionStore(connection),
        CookieTransport(request, response),
        config,
    )


def _unauthorized(config: SessionConfig) -> HTTPException:
    # A raised HTTPException discards the dependency response, so the cookie
    # clear has to travel on the exception itself.
    cleared = Response()
    cleared.delete_cookie(key=config.cookie_name, path=config.cookie_path)
    return HTTPException(
        status_code=401,
        detail="Not authenticated",
        headers={"set-cookie": cleared.headers["set-cookie"]},
    )


async def get_current_session(
    manager: SessionManager = Depends(get_session_manager),
) -> ActiveSession:
    try:
        return await manager.require_session()
    except UnauthorizedError as exc:
        raise _unauthorized(manager.config) from exc
