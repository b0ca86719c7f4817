"""
Spending statistics.

Amounts are summed as ``Decimal`` in Python rather than with SQL SUM so
that totals stay exact to the cent on every backend (SQLite stores
NUMERIC as floating point).
"""
import uuid
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.categories import models as category_models
from app.clock import today
from app.errors import ValidationError
from . import models


CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0")
UNKNOWN_CATEGORY = "unknown"


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_range(date_from: Optional[date], date_to: Optional[date]):
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")


def get_statistics(
    db: Session,
    user_id: uuid.UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    _check_range(date_from, date_to)

    query = db.query(
        models.Expense.amount,
        models.Expense.date,
        models.Expense.category_id,
    ).filter(models.Expense.user_id == user_id)

    if date_from:
        query = query.filter(models.Expense.date >= date_from)
    if date_to:
        query = query.filter(models.Expense.date <= date_to)

    rows = query.all()

    current_day = today()
    month_start = current_day.replace(day=1)
    this_month = [r for r in rows if month_start <= r.date <= current_day]

    total_amount = sum((Decimal(r.amount) for r in rows), ZERO)
    this_month_amount = sum((Decimal(r.amount) for r in this_month), ZERO)

    return {
        "total_expenses": len(rows),
        "total_amount": to_cents(total_amount),
        "this_month_expenses": len(this_month),
        "this_month_amount": to_cents(this_month_amount),
        "average_daily_amount": to_cents(this_month_amount / current_day.day),
        "category_count": len({r.category_id for r in rows if r.category_id is not None}),
    }


def get_category_statistics(
    db: Session,
    user_id: uuid.UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    _check_range(date_from, date_to)

    query = (
        db.query(
            models.Expense.amount,
            models.Expense.category_id,
            category_models.Category.name.label("category_name"),
            category_models.Category.color.label("category_color"),
        )
        .outerjoin(
            category_models.Category,
            category_models.Category.id == models.Expense.category_id,
        )
        .filter(models.Expense.user_id == user_id)
    )

    if date_from:
        query = query.filter(models.Expense.date >= date_from)
    if date_to:
        query = query.filter(models.Expense.date <= date_to)

    groups = {}
    for row in query.all():
        group = groups.setdefault(
            row.category_id,
            {
                "category_id": row.category_id,
                "category_name": row.category_name or UNKNOWN_CATEGORY,
                "category_color": row.category_color,
                "total_amount": ZERO,
                "expense_count": 0,
            },
        )
        group["total_amount"] += Decimal(row.amount)
        group["expense_count"] += 1

    grand_total = sum((g["total_amount"] for g in groups.values()), ZERO)

    result = []
    for group in groups.values():
        if grand_total > 0:
            percentage = (group["total_amount"] / grand_total * 100).quantize(TENTH, rounding=ROUND_HALF_UP)
        else:
            percentage = Decimal("0.0")
        result.append({
            **group,
            "total_amount": to_cents(group["total_amount"]),
            "percentage": percentage,
        })

    result.sort(key=lambda g: g["total_amount"], reverse=True)
    return result


def get_monthly_statistics(db: Session, user_id: uuid.UUID, year: int):
    current_year = today().year
    if year <= 2000 or year > current_year:
        raise ValidationError("Invalid year")

    rows = (
        db.query(models.Expense.amount, models.Expense.date)
        .filter(
            models.Expense.user_id == user_id,
            models.Expense.date >= date(year, 1, 1),
            models.Expense.date <= date(year, 12, 31),
        )
        .all()
    )

    totals = defaultdict(lambda: ZERO)
    counts = defaultdict(int)
    for row in rows:
        totals[row.date.month] += Decimal(row.amount)
        counts[row.date.month] += 1

    return [
        {
            "month": f"{year}-{month:02d}",
            "year": year,
            "total_amount": to_cents(totals[month]),
            "expense_count": counts[month],
        }
        for month in sorted(totals)
    ]
