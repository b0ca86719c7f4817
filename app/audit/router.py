from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.responses import Envelope
from app.security.sessions import SessionData
from app.users.auth import require_session
from app.users.permissions import require_admin
from . import schemas, service


router = APIRouter()


@router.get("/logs", response_model=Envelope[List[schemas.AccessLogOut]])
def list_my_logs(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
):
    logs = service.list_user_logs(db, session.user_id, limit=limit)
    return Envelope(data=[schemas.AccessLogOut.model_validate(log) for log in logs])


@router.delete("/logs", response_model=Envelope[schemas.CleanupResult])
def clean_logs(
    days_old: int = Query(90, ge=1),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_admin),
):
    deleted = service.clean_old_logs(db, days_old=days_old)
    return Envelope(
        data=schemas.CleanupResult(deleted=deleted),
        message=f"Removed {deleted} log entries",
    )
