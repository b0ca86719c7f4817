import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.clock import today


MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000")
MAX_DESCRIPTION_LENGTH = 500
CENT = Decimal("0.01")


def _coerce_date(value):
    # accept full ISO timestamps from clients and keep the calendar day
    if isinstance(value, str) and "T" in value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return value
    return value


def _check_not_future(value: date_type) -> date_type:
    if value > today():
        raise ValueError("Date cannot be in the future")
    return value


def _check_description(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Description must not be empty")
    return value


# =========================
# Create
# =========================
class ExpenseCreate(BaseModel):
    amount: Decimal = Field(..., ge=MIN_AMOUNT, le=MAX_AMOUNT, decimal_places=2)
    category_id: uuid.UUID
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    date: date_type

    @field_validator("amount")
    @classmethod
    def to_cents(cls, v):
        return v.quantize(CENT)

    @field_validator("description")
    @classmethod
    def check_description(cls, v):
        return _check_description(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _coerce_date(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return _check_not_future(v)


# =========================
# Update
# =========================
class ExpenseUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, ge=MIN_AMOUNT, le=MAX_AMOUNT, decimal_places=2)
    category_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(None, min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    date: Optional[date_type] = None

    @field_validator("amount")
    @classmethod
    def to_cents(cls, v):
        return v.quantize(CENT) if v is not None else v

    @field_validator("description")
    @classmethod
    def check_description(cls, v):
        return _check_description(v) if v is not None else v

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _coerce_date(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return _check_not_future(v) if v is not None else v


# =========================
# Output
# =========================
class ExpenseOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    category_id: Optional[uuid.UUID]
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    amount: Decimal
    description: str
    date: date_type
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =========================
# Statistics
# =========================
class DashboardStats(BaseModel):
    total_expenses: int
    total_amount: Decimal
    this_month_expenses: int
    this_month_amount: Decimal
    average_daily_amount: Decimal
    category_count: int


class CategoryStatistics(BaseModel):
    category_id: Optional[uuid.UUID]
    category_name: str
    category_color: Optional[str]
    total_amount: Decimal
    expense_count: int
    percentage: Decimal


class MonthlyStatistics(BaseModel):
    month: str
    year: int
    total_amount: Decimal
    expense_count: int


class MonthlyStatisticsOut(BaseModel):
    year: int
    months: List[MonthlyStatistics]
