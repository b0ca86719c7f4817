import uuid
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from app.categories import service as category_service
from app.clock import utcnow
from app.errors import NotFoundError, ValidationError
from . import models, schemas


SORT_COLUMNS = {
    "date": models.Expense.date,
    "amount": models.Expense.amount,
    "created_at": models.Expense.created_at,
}


# =========================
# Helper: serialize expense
# =========================
def serialize_expense(expense: models.Expense):
    return {
        "id": expense.id,
        "user_id": expense.user_id,
        "category_id": expense.category_id,
        "category_name": expense.category.name if expense.category else None,
        "category_color": expense.category.color if expense.category else None,
        "amount": expense.amount,
        "description": expense.description,
        "date": expense.date,
        "created_at": expense.created_at,
        "updated_at": expense.updated_at,
    }


def _require_visible_category(db: Session, user_id: uuid.UUID, category_id: uuid.UUID):
    category = category_service.find_visible_category(db, user_id, category_id)
    if not category:
        raise ValidationError("Category does not exist or is not accessible")
    return category


def _owned_expense(db: Session, user_id: uuid.UUID, expense_id: uuid.UUID):
    return (
        db.query(models.Expense)
        .options(joinedload(models.Expense.category))
        .filter(
            models.Expense.id == expense_id,
            models.Expense.user_id == user_id,
        )
        .first()
    )


# =========================
# Create Expense
# =========================
def create_expense(db: Session, user_id: uuid.UUID, expense: schemas.ExpenseCreate):
    _require_visible_category(db, user_id, expense.category_id)

    new_expense = models.Expense(
        user_id=user_id,
        category_id=expense.category_id,
        amount=expense.amount,
        description=expense.description,
        date=expense.date,
    )

    db.add(new_expense)
    db.commit()
    db.refresh(new_expense)
    return new_expense


# =========================
# Get Expense by ID
# =========================
def get_expense(db: Session, user_id: uuid.UUID, expense_id: uuid.UUID):
    expense = _owned_expense(db, user_id, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


# =========================
# List Expenses
# =========================
def _filtered_query(
    db: Session,
    user_id: uuid.UUID,
    category_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
):
    query = db.query(models.Expense).filter(models.Expense.user_id == user_id)

    if category_id:
        query = query.filter(models.Expense.category_id == category_id)

    if date_from:
        query = query.filter(models.Expense.date >= date_from)

    if date_to:
        query = query.filter(models.Expense.date <= date_to)

    if search and search.strip():
        query = query.filter(models.Expense.description.icontains(search.strip(), autoescape=True))

    return query


def list_expenses(
    db: Session,
    user_id: uuid.UUID,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "date",
    sort_order: str = "desc",
    category_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
):
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    query = _filtered_query(db, user_id, category_id, date_from, date_to, search)
    total = query.count()

    column = SORT_COLUMNS.get(sort_by, models.Expense.date)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    expenses = (
        query
        .options(joinedload(models.Expense.category))
        .order_by(ordering, models.Expense.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return expenses, total


def list_for_export(db: Session, user_id: uuid.UUID, max_rows: int):
    return (
        db.query(models.Expense)
        .options(joinedload(models.Expense.category))
        .filter(models.Expense.user_id == user_id)
        .order_by(models.Expense.date.desc(), models.Expense.created_at.desc())
        .limit(max_rows)
        .all()
    )


# =========================
# Update Expense
# =========================
def update_expense(
    db: Session,
    user_id: uuid.UUID,
    expense_id: uuid.UUID,
    expense_data: schemas.ExpenseUpdate,
):
    expense = _owned_expense(db, user_id, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")

    data = {k: v for k, v in expense_data.model_dump(exclude_unset=True).items() if v is not None}

    if "category_id" in data:
        _require_visible_category(db, user_id, data["category_id"])

    for field, value in data.items():
        setattr(expense, field, value)
    expense.updated_at = utcnow()

    db.commit()
    db.refresh(expense)
    return expense


# =========================
# Delete Expense
# =========================
def delete_expense(db: Session, user_id: uuid.UUID, expense_id: uuid.UUID) -> bool:
    deleted = (
        db.query(models.Expense)
        .filter(
            models.Expense.id == expense_id,
            models.Expense.user_id == user_id,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0
