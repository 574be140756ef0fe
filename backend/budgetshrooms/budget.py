from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_serializer, field_validator

from .database import get_db_connection
from .dependencies import get_current_session
from .errors import InvalidInputError, NotFoundError
from .models import ActiveSession
from .services.money import format_currency, money_str
from .services.users_service import update_budget

router = APIRouter(prefix="/budget", tags=["budget"])


class BudgetUpdateRequest(BaseModel):
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Any:
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value


class BudgetResponse(BaseModel):
    amount: Decimal
    formatted: str

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return money_str(value)


@router.get("", response_model=BudgetResponse)
async def get_budget(session: ActiveSession = Depends(get_current_session)) -> BudgetResponse:
    budget = session.user.current_budget
    return BudgetResponse(amount=budget, formatted=format_currency(budget))


@router.put("", response_model=BudgetResponse)
async def put_budget(
    payload: BudgetUpdateRequest,
    session: ActiveSession = Depends(get_current_session),
    connection: Any = Depends(get_db_connection),
) -> BudgetResponse:
    try:
        user = await update_budget(connection, session.user_id, payload.amount)
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return BudgetResponse(amount=user.current_budget, formatted=format_currency(user.current_budget))
