from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_serializer

from .config import settings
from .database import get_db_connection
from .dependencies import get_current_session, get_session_manager
from .errors import ConflictError, InvalidCredentialsError, InvalidInputError
from .models import ActiveSession, User
from .services.money import money_str
from .services.session_manager import SessionManager
from .services.users_service import authenticate, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


class AuthUserResponse(BaseModel):
    id: UUID
    email: str
    name: str | None
    current_budget: Decimal
    created_at: datetime

    @field_serializer("current_budget")
    def serialize_budget(self, value: Decimal) -> str:
        return money_str(value)


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    name: str | None = Field(default=None, max_length=120)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


def _user_response(user: User) -> AuthUserResponse:
    return AuthUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        current_budget=user.current_budget,
        created_at=user.created_at,
    )


@router.post("/register", response_model=AuthUserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    connection: Any = Depends(get_db_connection),
    manager: SessionManager = Depends(get_session_manager),
) -> AuthUserResponse:
    try:
        user = await register_user(
            connection,
            email=payload.email,
            password=payload.password,
            name=payload.name,
            salt_rounds=settings.bcrypt_salt_rounds,
        )
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    await manager.delete_session()
    await manager.create_session(user.id)
    return _user_response(user)


@router.post("/login", response_model=AuthUserResponse)
async def login(
    payload: LoginRequest,
    connection: Any = Depends(get_db_connection),
    manager: SessionManager = Depends(get_session_manager),
) -> AuthUserResponse:
    try:
        user = await authenticate(connection, email=payload.email, password=payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    # Drop whatever this browser was signed in as before issuing a new token.
    await manager.delete_session()
    await manager.create_session(user.id)
    return _user_response(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(manager: SessionManager = Depends(get_session_manager)) -> None:
    await manager.delete_session()


@router.get("/me", response_model=AuthUserResponse)
async def me(session: ActiveSession = Depends(get_current_session)) -> AuthUserResponse:
    return _user_response(session.user)
