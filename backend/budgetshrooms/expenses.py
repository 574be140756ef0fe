from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_serializer, field_validator

from .database import get_db_connection
from .dependencies import get_current_session, get_month_resolver
from .errors import ExpenseNotFoundError, InvalidInputError
from .models import ActiveSession
from .services.expenses_service import (
    build_month_summary,
    create_expense,
    delete_expense,
    list_expense_months,
    list_expenses,
)
from .services.money import money_str
from .services.month_resolver import MonthResolver

router = APIRouter(tags=["expenses"])


class ExpenseCreate(BaseModel):
    amount: str
    note: str | None = None
    occurred_at: datetime | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Any:
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value


class ExpenseItem(BaseModel):
    id: UUID
    amount: Decimal
    note: str | None
    occurred_at: datetime
    occurred_label: str

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return money_str(value)


class MonthSummaryResponse(BaseModel):
    month: str
    title: str
    total: Decimal
    budget: Decimal
    remaining: Decimal
    remaining_is_positive: bool
    formatted_total: str
    formatted_budget: str
    formatted_remaining: str
    items: list[ExpenseItem] = Field(default_factory=list)

    @field_serializer("total", "budget", "remaining")
    def serialize_decimal(self, value: Decimal) -> str:
        return money_str(value)


class MonthLink(BaseModel):
    id: str
    label: str


class MonthListResponse(BaseModel):
    active_month: str
    current_month: str
    months: list[MonthLink]


@router.get("/months", response_model=MonthListResponse)
async def list_months(
    month: str | None = Query(default=None),
    session: ActiveSession = Depends(get_current_session),
    connection: Any = Depends(get_db_connection),
    resolver: MonthResolver = Depends(get_month_resolver),
) -> MonthListResponse:
    """Month navigation: every month with expenses plus the current and selected month."""
    expense_months = await list_expense_months(connection, session.user_id, resolver.display_zone.key)
    current = resolver.current_month()
    month_ids = resolver.collect_month_ids(expense_months, current=current, selected=month)

    return MonthListResponse(
        active_month=resolver.resolve_active_month(month, month_ids, current),
        current_month=current,
        months=[MonthLink(id=month_id, label=resolver.format_month_title(month_id)) for month_id in month_ids],
    )


@router.get("/expenses", response_model=MonthSummaryResponse)
async def get_month_expenses(
    month: str | None = Query(default=None),
    session: ActiveSession = Depends(get_current_session),
    connection: Any = Depends(get_db_connection),
    resolver: MonthResolver = Depends(get_month_resolver),
) -> MonthSummaryResponse:
    """Expenses and totals for one month; a missing or malformed month means the current one."""
    month_id = month if resolver.parse_month(month) else resolver.current_month()
    month_range = resolver.get_month_range(month_id)
    expenses = await list_expenses(connection, session.user_id, month_range)

    summary = build_month_summary(
        resolver,
        month_id=month_id,
        expenses=expenses,
        budget=session.user.current_budget,
    )
    return MonthSummaryResponse(**summary)


@router.post("/expenses", response_model=ExpenseItem, status_code=status.HTTP_201_CREATED)
async def post_expense(
    payload: ExpenseCreate,
    session: ActiveSession = Depends(get_current_session),
    connection: Any = Depends(get_db_connection),
    resolver: MonthResolver = Depends(get_month_resolver),
) -> ExpenseItem:
    try:
        expense = await create_expense(
            connection,
            session.user_id,
            amount=payload.amount,
            note=payload.note,
            occurred_at=payload.occurred_at,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ExpenseItem(
        id=expense.id,
        amount=expense.amount,
        note=expense.note,
        occurred_at=expense.occurred_at,
        occurred_label=resolver.format_expense_timestamp(expense.occurred_at),
    )


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_expense(
    expense_id: UUID,
    session: ActiveSession = Depends(get_current_session),
    connection: Any = Depends(get_db_connection),
) -> None:
    try:
        await delete_expense(connection, session.user_id, expense_id)
    except ExpenseNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
