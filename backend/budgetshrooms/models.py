from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class User:
    id: UUID
    email: str
    name: str | None
    current_budget: Decimal
    created_at: datetime


@dataclass(frozen=True)
class ActiveSession:
    token: str
    user_id: UUID
    expires_at: datetime
    user: User


@dataclass(frozen=True)
class Expense:
    id: UUID
    user_id: UUID
    amount: Decimal
    note: str | None
    occurred_at: datetime
