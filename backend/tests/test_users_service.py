from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from psycopg.errors import UniqueViolation

from budgetshrooms.errors import ConflictError, InvalidCredentialsError, InvalidInputError, NotFoundError
from budgetshrooms.services import users_service

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _run(coro):
    return asyncio.run(coro)


class FakeUsersCursor:
    """Stores plain-text "hashes" so crypt() comparisons can be simulated."""

    def __init__(self, connection):
        self.connection = connection
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query, params=None):
        normalized = " ".join(query.split())
        self.connection.queries.append((normalized, params))
        self._rows = []

        if normalized.startswith("INSERT INTO users"):
            email, name, password, _rounds = params
            if any(user["email"] == email for user in self.connection.users.values()):
                raise UniqueViolation("duplicate key value violates unique constraint")
            user = {
                "id": uuid4(),
                "email": email,
                "name": name,
                "password_hash": f"hashed:{password}",
                "current_budget": Decimal("0.00"),
                "created_at": NOW,
            }
            self.connection.users[user["id"]] = user
            self._rows = [user]
            return

        if "WHERE LOWER(email) = LOWER(%s) AND password_hash = crypt(%s, password_hash)" in normalized:
            email, password = params
            self._rows = [
                user for user in self.connection.users.values()
                if user["email"].lower() == email.lower() and user["password_hash"] == f"hashed:{password}"
            ]
            return

        if normalized.startswith("SELECT id, email, name, current_budget, created_at FROM users WHERE id = %s"):
            (user_id,) = params
            user = self.connection.users.get(user_id)
            self._rows = [user] if user else []
            return

        if normalized.startswith("UPDATE users SET current_budget"):
            budget, user_id = params
            user = self.connection.users.get(user_id)
            if user:
                user["current_budget"] = budget
                self._rows = [user]
            return

        raise AssertionError(f"Unexpected query: {normalized}")

    async def fetchone(self):
        return self._rows[0] if self._rows else None


class FakeUsersConnection:
    def __init__(self):
        self.users = {}
        self.queries = []

    def cursor(self):
        return FakeUsersCursor(self)


def _register(connection, email="Ada@Example.com ", password="secret-pass"):
    return _run(
        users_service.register_user(
            connection, email=email, password=password, name=" Ada ", salt_rounds=12
        )
    )


def test_register_normalizes_email_and_passes_salt_rounds() -> None:
    connection = FakeUsersConnection()

    user = _register(connection)

    assert user.email == "ada@example.com"
    assert user.name == "Ada"
    assert user.current_budget == Decimal("0.00")
    _, params = connection.queries[0]
    assert params[-1] == 12


def test_register_duplicate_email_is_conflict() -> None:
    connection = FakeUsersConnection()
    _register(connection)

    with pytest.raises(ConflictError):
        _register(connection, email="ada@example.com")


@pytest.mark.parametrize(
    "email,password",
    [("not-an-email", "secret-pass"), ("ada@example.com", "short"), ("ada@example.com", "x" * 129)],
)
def test_register_rejects_invalid_input_before_insert(email, password) -> None:
    connection = FakeUsersConnection()

    with pytest.raises(InvalidInputError):
        _register(connection, email=email, password=password)

    assert connection.queries == []


def test_authenticate_success_is_case_insensitive() -> None:
    connection = FakeUsersConnection()
    registered = _register(connection)

    user = _run(users_service.authenticate(connection, email="ADA@example.com", password="secret-pass"))

    assert user.id == registered.id


def test_wrong_password_and_unknown_email_fail_identically() -> None:
    connection = FakeUsersConnection()
    _register(connection)

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        _run(users_service.authenticate(connection, email="ada@example.com", password="nope-nope"))
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        _run(users_service.authenticate(connection, email="bob@example.com", password="secret-pass"))

    assert str(wrong_password.value) == str(unknown_email.value) == "Invalid email or password"


def test_update_budget_round_trip() -> None:
    connection = FakeUsersConnection()
    user = _register(connection)

    updated = _run(users_service.update_budget(connection, user.id, "1500"))

    assert updated.current_budget == Decimal("1500.00")
    assert _run(users_service.fetch_user(connection, user.id)).current_budget == Decimal("1500.00")


@pytest.mark.parametrize("raw", ["-1", "abc", "10.005", "NaN", "1e30"])
def test_update_budget_rejects_invalid(raw) -> None:
    connection = FakeUsersConnection()
    user = _register(connection)
    query_count = len(connection.queries)

    with pytest.raises(InvalidInputError):
        _run(users_service.update_budget(connection, user.id, raw))

    assert len(connection.queries) == query_count


def test_update_budget_unknown_user() -> None:
    with pytest.raises(NotFoundError):
        _run(users_service.update_budget(FakeUsersConnection(), uuid4(), "10"))


@pytest.mark.parametrize("raw", ["1e30", "1E+40", "10000000000"])
def test_parse_budget_rejects_oversized_values(raw) -> None:
    with pytest.raises(InvalidInputError, match="too large"):
        users_service.parse_budget(raw)
