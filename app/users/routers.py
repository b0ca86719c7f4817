from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from loguru import logger
from sqlalchemy.orm import Session

from app.audit.service import AccessRecorder, get_access_recorder
from app.database import get_db
from app.errors import NotFoundError, UnauthenticatedError
from app.responses import Envelope, paginate
from app.security.sessions import SessionData, clear_session_cookie, set_session_cookie
from app.users import crud as user_crud
from app.users import schemas, service
from app.users.auth import get_current_session, require_session
from app.users.permissions import require_admin


router = APIRouter()
users_router = APIRouter()


RESET_REQUESTED_MESSAGE = "If the email is registered, a password reset link has been sent"


def _auth_result(user, session) -> schemas.AuthResult:
    return schemas.AuthResult(
        user=schemas.UserDisplaySchema.model_validate(user),
        session=schemas.SessionOut.model_validate(session),
    )


@router.post("/register", response_model=Envelope[schemas.AuthResult])
def register(
    data: schemas.RegisterSchema,
    response: Response,
    db: Session = Depends(get_db),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    user, session, token = service.register(db, data, recorder)
    set_session_cookie(response, token)
    return Envelope(data=_auth_result(user, session), message="Registration successful")


@router.post("/login", response_model=Envelope[schemas.AuthResult])
def login(
    data: schemas.LoginSchema,
    response: Response,
    db: Session = Depends(get_db),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    user, session, token = service.login(db, data, recorder)
    set_session_cookie(response, token)
    return Envelope(data=_auth_result(user, session), message="Login successful")


@router.post("/logout", response_model=Envelope[None])
def logout(
    response: Response,
    session: Optional[SessionData] = Depends(get_current_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    # Logging out always succeeds, even without a valid session
    service.logout(session, recorder)
    clear_session_cookie(response)
    return Envelope(message="Logout successful")


@router.get("/session", response_model=Envelope[schemas.SessionOut])
def get_session(session: Optional[SessionData] = Depends(get_current_session)):
    if session is None:
        raise UnauthenticatedError()
    return Envelope(data=schemas.SessionOut.model_validate(session))


@router.get("/me", response_model=Envelope[schemas.AuthResult])
def get_me(
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
):
    user = user_crud.get_user_by_id(db, session.user_id)
    if not user:
        raise NotFoundError("User not found")
    return Envelope(data=_auth_result(user, session))


@router.put("/me", response_model=Envelope[schemas.AuthResult])
def update_me(
    data: schemas.ProfileUpdateSchema,
    response: Response,
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_session),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    user, new_session, token = service.update_profile(db, session, data, recorder)
    set_session_cookie(response, token)
    return Envelope(data=_auth_result(user, new_session), message="Profile updated")


@router.post("/forgot-password", response_model=Envelope[None])
def forgot_password(
    data: schemas.ForgotPasswordSchema,
    db: Session = Depends(get_db),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    try:
        service.request_password_reset(db, data.email, recorder)
    except Exception:
        # The answer must not depend on whether the account exists, even on failure
        logger.exception("Password reset request failed")
    return Envelope(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=Envelope[None])
def reset_password(
    data: schemas.ResetPasswordSchema,
    db: Session = Depends(get_db),
    recorder: AccessRecorder = Depends(get_access_recorder),
):
    service.reset_password(db, data, recorder)
    return Envelope(message="Password has been reset, please log in with the new password")


# ================= ADMIN =================
@users_router.get("/", response_model=Envelope[List[schemas.UserDisplaySchema]])
def list_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_admin),
):
    users, total = user_crud.get_all_users(db, skip=(page - 1) * limit, limit=limit)
    return Envelope(
        data=[schemas.UserDisplaySchema.model_validate(u) for u in users],
        pagination=paginate(page, limit, total),
    )
