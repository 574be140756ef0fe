"""Service layer for expense CRUD and per-month summaries."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ..errors import ExpenseNotFoundError, InvalidInputError
from ..models import Expense
from .money import MONEY_QUANT, format_currency, quantize_money, sum_amounts
from .month_resolver import MonthRange, MonthResolver

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("1000000")
NOTE_MAX_LENGTH = 160


def parse_amount(raw: Any) -> Decimal:
    """
    Validate a user-entered amount and return it exact to the cent.

    Accepts "42", "42.5" and "42.50"; rejects zero, negatives, more than two
    fractional digits and anything that is not a plain number.
    """
    text = str(raw).strip() if raw is not None else ""
    if not text:
        raise InvalidInputError("Enter an amount")

    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise InvalidInputError("Enter a valid amount") from exc

    if not value.is_finite():
        raise InvalidInputError("Enter a valid amount")
    if value <= 0:
        raise InvalidInputError("Amount must be greater than zero")
    # Bound the magnitude first; quantize overflows the context on huge exponents.
    if value > MAX_AMOUNT:
        raise InvalidInputError("Amount is too large")
    if value != value.quantize(MONEY_QUANT):
        raise InvalidInputError("Amount can have at most 2 decimal places")

    return value.quantize(MONEY_QUANT)


def clean_note(raw: str | None) -> str | None:
    if raw is None:
        return None

    trimmed = raw.strip()
    if len(trimmed) > NOTE_MAX_LENGTH:
        raise InvalidInputError(f"Keep notes under {NOTE_MAX_LENGTH} characters")

    return trimmed or None


def _expense_from_row(row: dict[str, Any]) -> Expense:
    return Expense(
        id=row["id"],
        user_id=row["user_id"],
        amount=quantize_money(Decimal(row["amount"])),
        note=row["note"],
        occurred_at=row["occurred_at"],
    )


async def create_expense(
    connection: AsyncConnection,
    user_id: UUID,
    *,
    amount: Any,
    note: str | None = None,
    occurred_at: datetime | None = None,
) -> Expense:
    # Validate everything before touching the database.
    parsed_amount = parse_amount(amount)
    parsed_note = clean_note(note)
    occurred = occurred_at or datetime.now(timezone.utc)
    if occurred.tzinfo is None:
        occurred = occurred.replace(tzinfo=timezone.utc)

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            INSERT INTO expenses (user_id, amount, note, occurred_at)
            VALUES (%s, %s, %s, %s)
            RETURNING id, user_id, amount, note, occurred_at
            """,
            (user_id, parsed_amount, parsed_note, occurred),
        )
        row = await cursor.fetchone()

    logger.info("Created expense %s for user %s", row["id"], user_id)
    return _expense_from_row(row)


async def list_expenses(
    connection: AsyncConnection,
    user_id: UUID,
    month_range: MonthRange,
) -> list[Expense]:
    """Expenses with start <= occurred_at < end, newest first."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, user_id, amount, note, occurred_at
            FROM expenses
            WHERE user_id = %s
              AND occurred_at >= %s
              AND occurred_at < %s
            ORDER BY occurred_at DESC
            """,
            (user_id, month_range.start, month_range.end),
        )
        rows = await cursor.fetchall()

    return [_expense_from_row(row) for row in rows]


async def list_expense_months(
    connection: AsyncConnection,
    user_id: UUID,
    display_timezone: str,
) -> list[str]:
    """Distinct YYYY-MM months, in the display timezone, that hold at least one expense."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT DISTINCT to_char(occurred_at AT TIME ZONE %s, 'YYYY-MM') AS month
            FROM expenses
            WHERE user_id = %s
            ORDER BY month DESC
            """,
            (display_timezone, user_id),
        )
        rows = await cursor.fetchall()

    return [row["month"] for row in rows]


async def delete_expense(connection: AsyncConnection, user_id: UUID, expense_id: UUID) -> None:
    """Delete one expense owned by the user; missing or foreign ids raise."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            DELETE FROM expenses
            WHERE id = %s
              AND user_id = %s
            RETURNING id
            """,
            (expense_id, user_id),
        )
        row = await cursor.fetchone()

    if row is None:
        raise ExpenseNotFoundError("Expense not found")

    logger.info("Deleted expense %s for user %s", expense_id, user_id)


def build_month_summary(
    resolver: MonthResolver,
    *,
    month_id: str,
    expenses: Sequence[Expense],
    budget: Decimal,
) -> dict[str, Any]:
    total = sum_amounts(expense.amount for expense in expenses)
    remaining = quantize_money(budget - total)

    return {
        "month": month_id,
        "title": resolver.format_month_title(month_id),
        "total": total,
        "budget": quantize_money(budget),
        "remaining": remaining,
        "remaining_is_positive": remaining >= 0,
        "formatted_total": format_currency(total),
        "formatted_budget": format_currency(budget),
        "formatted_remaining": format_currency(remaining),
        "items": [
            {
                "id": expense.id,
                "amount": expense.amount,
                "note": expense.note,
                "occurred_at": expense.occurred_at,
                "occurred_label": resolver.format_expense_timestamp(expense.occurred_at),
            }
            for expense in expenses
        ],
    }
