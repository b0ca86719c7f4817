import uuid
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.audit import service as audit
from app.audit.service import AccessRecorder, get_access_recorder
from app.database import get_db
from app.errors import AppError, NotFoundError
from app.responses import Envelope, paginate
from app.security.sessions import SessionData
from app.users.auth import require_session
from . import schemas, service


router = APIRouter()

RESOURCE = "categories"


# ================= LIST =================
@router.get("/", response_model=Envelope[List[schemas.CategoryOut]])
def list_categories(
    include_predefined: bool = True,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    sort_by: Literal["name", "created_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    categories, total = service.list_categories(
        db,
        session.user_id,
        include_predefined=include_predefined,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    recorder.record(audit.READ, RESOURCE, "list", user_id=session.user_id)

    return Envelope(
        data=[schemas.CategoryOut.model_validate(c) for c in categories],
        pagination=paginate(page, limit, total),
    )


# ================= CREATE =================
@router.post("/", response_model=Envelope[schemas.CategoryOut])
def create_category(
    category: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        db_category = service.create_category(db, session.user_id, category)
    except AppError:
        recorder.record(audit.CREATE, RESOURCE, "new", success=False, user_id=session.user_id)
        raise

    recorder.record(audit.CREATE, RESOURCE, db_category.id, user_id=session.user_id)
    return Envelope(
        data=schemas.CategoryOut.model_validate(db_category),
        message="Category created",
    )


# ================= READ =================
@router.get("/{category_id}", response_model=Envelope[schemas.CategoryOut])
def get_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        db_category = service.get_category(db, session.user_id, category_id)
    except NotFoundError:
        recorder.record(audit.READ, RESOURCE, category_id, success=False, user_id=session.user_id)
        raise

    recorder.record(audit.READ, RESOURCE, category_id, user_id=session.user_id)
    return Envelope(data=schemas.CategoryOut.model_validate(db_category))


# ================= UPDATE =================
@router.put("/{category_id}", response_model=Envelope[schemas.CategoryOut])
def update_category(
    category_id: uuid.UUID,
    category: schemas.CategoryUpdate,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        db_category = service.update_category(db, session, category_id, category)
    except AppError:
        recorder.record(audit.UPDATE, RESOURCE, category_id, success=False, user_id=session.user_id)
        raise

    recorder.record(audit.UPDATE, RESOURCE, category_id, user_id=session.user_id)
    return Envelope(
        data=schemas.CategoryOut.model_validate(db_category),
        message="Category updated",
    )


# ================= DELETE =================
@router.delete("/{category_id}", response_model=Envelope[None])
def delete_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    deleted = service.delete_category(db, session, category_id)
    recorder.record(audit.DELETE, RESOURCE, category_id, success=deleted, user_id=session.user_id)

    if not deleted:
        raise NotFoundError("Category not found")
    return Envelope(message="Category deleted")
