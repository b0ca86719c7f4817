import uuid
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.audit import service as audit
from app.audit.service import AccessRecorder, get_access_recorder
from app.config import settings
from app.database import check_connection, get_db
from app.errors import AppError, NotFoundError, UnavailableError, ValidationError
from app.responses import Envelope, paginate
from app.security.sessions import SessionData
from app.users.auth import require_session
from . import export, schemas, service, statistics


router = APIRouter()

RESOURCE = "expenses"


def _out(expense) -> schemas.ExpenseOut:
    return schemas.ExpenseOut(**service.serialize_expense(expense))


# =========================
# List / Create
# =========================
@router.get("/", response_model=Envelope[List[schemas.ExpenseOut]])
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["date", "amount", "created_at"] = "date",
    sort_order: Literal["asc", "desc"] = "desc",
    category_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    expenses, total = service.list_expenses(
        db,
        session.user_id,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        category_id=category_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    recorder.record(audit.READ, RESOURCE, "list", user_id=session.user_id)

    return Envelope(
        data=[_out(e) for e in expenses],
        pagination=paginate(page, limit, total),
    )


@router.post("/", response_model=Envelope[schemas.ExpenseOut])
def create_expense(
    expense: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        new_expense = service.create_expense(db, session.user_id, expense)
    except AppError:
        recorder.record(audit.CREATE, RESOURCE, success=False, user_id=session.user_id)
        raise

    recorder.record(audit.CREATE, RESOURCE, new_expense.id, user_id=session.user_id)
    return Envelope(data=_out(new_expense), message="Expense created")


# =========================
# Export
# =========================
@router.get("/export")
def export_expenses(
    format: str = "csv",
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    if format not in export.SUPPORTED_FORMATS:
        recorder.record(audit.EXPORT, RESOURCE, format, success=False, user_id=session.user_id)
        raise ValidationError("Unsupported export format")

    if not check_connection(db):
        recorder.record(audit.EXPORT, RESOURCE, format, success=False, user_id=session.user_id)
        raise UnavailableError("Database unavailable, cannot export data")

    expenses = service.list_for_export(db, session.user_id, settings.EXPORT_MAX_ROWS)
    content = export.expenses_to_csv(expenses)

    recorder.record(audit.EXPORT, RESOURCE, format, user_id=session.user_id)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export.export_filename()}"'},
    )


# =========================
# Statistics
# =========================
@router.get("/statistics", response_model=Envelope[schemas.DashboardStats])
def get_statistics(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
):
    stats = statistics.get_statistics(db, session.user_id, date_from, date_to)
    return Envelope(data=schemas.DashboardStats(**stats))


@router.get("/statistics/categories", response_model=Envelope[List[schemas.CategoryStatistics]])
def get_category_statistics(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
):
    stats = statistics.get_category_statistics(db, session.user_id, date_from, date_to)
    return Envelope(data=[schemas.CategoryStatistics(**s) for s in stats])


@router.get("/statistics/monthly", response_model=Envelope[schemas.MonthlyStatisticsOut])
def get_monthly_statistics(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
):
    if year is None:
        year = statistics.today().year
    months = statistics.get_monthly_statistics(db, session.user_id, year)
    return Envelope(
        data=schemas.MonthlyStatisticsOut(
            year=year,
            months=[schemas.MonthlyStatistics(**m) for m in months],
        )
    )


# =========================
# Single expense
# =========================
@router.get("/{expense_id}", response_model=Envelope[schemas.ExpenseOut])
def get_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        expense = service.get_expense(db, session.user_id, expense_id)
    except NotFoundError:
        recorder.record(audit.READ, RESOURCE, expense_id, success=False, user_id=session.user_id)
        raise

    recorder.record(audit.READ, RESOURCE, expense_id, user_id=session.user_id)
    return Envelope(data=_out(expense))


@router.put("/{expense_id}", response_model=Envelope[schemas.ExpenseOut])
def update_expense(
    expense_id: uuid.UUID,
    expense: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        updated = service.update_expense(db, session.user_id, expense_id, expense)
    except AppError:
        recorder.record(audit.UPDATE, RESOURCE, expense_id, success=False, user_id=session.user_id)
        raise

    recorder.record(audit.UPDATE, RESOURCE, expense_id, user_id=session.user_id)
    return Envelope(data=_out(updated), message="Expense updated")


@router.delete("/{expense_id}", response_model=Envelope[None])
def delete_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    deleted = service.delete_expense(db, session.user_id, expense_id)
    recorder.record(audit.DELETE, RESOURCE, expense_id, success=deleted, user_id=session.user_id)

    if not deleted:
        raise NotFoundError("Expense not found")
    return Envelope(message="Expense deleted")
