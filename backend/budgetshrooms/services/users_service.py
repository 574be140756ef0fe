"""Accounts: registration, credential checks and the monthly budget figure."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from psycopg.errors import UniqueViolation

from ..errors import ConflictError, InvalidCredentialsError, InvalidInputError, NotFoundError
from ..models import User
from .money import MONEY_QUANT

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
MAX_BUDGET = Decimal("9999999999.99")


def user_from_row(row: dict[str, Any]) -> User:
    budget = row.get("current_budget")
    return User(
        id=row["id"],
        email=row["email"],
        name=row.get("name"),
        current_budget=Decimal("0.00") if budget is None else Decimal(budget),
        created_at=row["created_at"],
    )


def normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    if not normalized or "@" not in normalized:
        raise InvalidInputError("Invalid email")
    return normalized


def validate_password(password: str) -> str:
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise InvalidInputError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
        )
    return password


def parse_budget(raw: Any) -> Decimal:
    """Budget figures are non-negative and exact to the cent."""
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInputError("Enter a valid budget amount") from exc

    if not value.is_finite() or value < 0:
        raise InvalidInputError("Budget must be zero or more")
    # Bound the magnitude first; quantize overflows the context on huge exponents.
    if value > MAX_BUDGET:
        raise InvalidInputError("Budget is too large")
    if value != value.quantize(MONEY_QUANT):
        raise InvalidInputError("Budget can have at most 2 decimal places")

    return value.quantize(MONEY_QUANT)


async def register_user(
    connection: AsyncConnection,
    *,
    email: str,
    password: str,
    name: str | None,
    salt_rounds: int,
) -> User:
    email = normalize_email(email)
    validate_password(password)
    name = (name or "").strip() or None

    async with connection.cursor() as cursor:
        try:
            await cursor.execute(
                """
                INSERT INTO users (email, name, password_hash)
                VALUES (%s, %s, crypt(%s, gen_salt('bf', %s::int)))
                RETURNING id, email, name, current_budget, created_at
                """,
                (email, name, password, salt_rounds),
            )
        except UniqueViolation as exc:
            raise ConflictError("An account with this email already exists") from exc

        row = await cursor.fetchone()

    logger.info("Registered user %s", row["id"])
    return user_from_row(row)


async def authenticate(connection: AsyncConnection, *, email: str, password: str) -> User:
    """
    Resolve a user from email and password.

    Unknown emails and wrong passwords share one query and one failure, so
    the response never reveals which of the two was wrong.
    """
    try:
        email = normalize_email(email)
    except InvalidInputError as exc:
        raise InvalidCredentialsError("Invalid email or password") from exc

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, email, name, current_budget, created_at
            FROM users
            WHERE LOWER(email) = LOWER(%s)
              AND password_hash = crypt(%s, password_hash)
            """,
            (email, password),
        )
        row = await cursor.fetchone()

    if row is None:
        logger.warning("Rejected sign-in attempt")
        raise InvalidCredentialsError("Invalid email or password")

    return user_from_row(row)


async def fetch_user(connection: AsyncConnection, user_id: UUID) -> User:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, email, name, current_budget, created_at
            FROM users
            WHERE id = %s
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        raise NotFoundError("User not found")

    return user_from_row(row)


async def update_budget(connection: AsyncConnection, user_id: UUID, amount: Any) -> User:
    budget = parse_budget(amount)

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            UPDATE users
            SET current_budget = %s
            WHERE id = %s
            RETURNING id, email, name, current_budget, created_at
            """,
            (budget, user_id),
        )
        row = await cursor.fetchone()

    if row is None:
        raise NotFoundError("User not found")

    return user_from_row(row)
