import uuid

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.audit import service as audit
from app.audit.service import AccessRecorder
from app.errors import ConflictError, NotFoundError, UnauthenticatedError, ValidationError
from app.security.passwords import hash_password, validate_password, verify_password
from app.security.sessions import (
    SessionData,
    issue_reset_token,
    issue_session,
    parse_reset_token,
    reset_token_matches,
)
from app.users import crud as user_crud
from app.users import schemas


RESOURCE = "user"


# =========================
# Register
# =========================
def register(db: Session, data: schemas.RegisterSchema, recorder: AccessRecorder):
    password_errors = validate_password(data.password)
    if password_errors:
        recorder.record(audit.REGISTER, RESOURCE, success=False)
        raise ValidationError(password_errors[0])

    if user_crud.email_exists(db, data.email):
        recorder.record(audit.REGISTER, RESOURCE, success=False)
        raise ConflictError("Email already registered")

    try:
        user = user_crud.create_user(
            db,
            email=data.email,
            name=data.name,
            hashed_password=hash_password(data.password),
        )
    except IntegrityError:
        # lost a race against a concurrent registration
        db.rollback()
        recorder.record(audit.REGISTER, RESOURCE, success=False)
        raise ConflictError("Email already registered")

    session, token = issue_session(user)
    recorder.record(audit.REGISTER, RESOURCE, user.id, success=True, user_id=user.id)
    logger.info(f"✅ User registered: {user.email}")
    return user, session, token


# =========================
# Login / Logout
# =========================
def login(db: Session, data: schemas.LoginSchema, recorder: AccessRecorder):
    user = user_crud.get_user_by_email(db, data.email)

    if not user or not verify_password(data.password, user.hashed_password):
        recorder.record(audit.LOGIN, RESOURCE, success=False)
        logger.warning(f"Authentication denied for email: {data.email}")
        raise UnauthenticatedError("Invalid email or password")

    session, token = issue_session(user)
    recorder.record(audit.LOGIN, RESOURCE, user.id, success=True, user_id=user.id)
    logger.info(f"✅ User authenticated: {user.email}")
    return user, session, token


def logout(session: SessionData | None, recorder: AccessRecorder):
    if session is not None:
        recorder.record(audit.LOGOUT, RESOURCE, session.user_id, success=True, user_id=session.user_id)
        logger.info(f"User logged out: {session.email}")


# =========================
# Profile
# =========================
def update_profile(
    db: Session,
    session: SessionData,
    data: schemas.ProfileUpdateSchema,
    recorder: AccessRecorder,
):
    user = user_crud.get_user_by_id(db, session.user_id)
    if not user:
        raise NotFoundError("User not found")

    changes = {}
    try:
        if data.name is not None:
            changes["name"] = data.name

        if data.email is not None and data.email != user.email:
            if user_crud.email_exists(db, data.email, exclude_user_id=user.id):
                raise ConflictError("Email already registered")
            changes["email"] = data.email

        if data.password is not None:
            password_errors = validate_password(data.password)
            if password_errors:
                raise ValidationError(password_errors[0])
            changes["hashed_password"] = hash_password(data.password)

        try:
            user = user_crud.update_user(db, user, changes)
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email already registered")
    except (ConflictError, ValidationError):
        recorder.record(audit.UPDATE, RESOURCE, session.user_id, success=False, user_id=session.user_id)
        raise

    # Re-issue so the cookie reflects the new identity; the first login time is kept
    new_session, token = issue_session(user, created_at=session.created_at)
    recorder.record(audit.UPDATE, RESOURCE, user.id, success=True, user_id=user.id)
    return user, new_session, token


# =========================
# Password reset
# =========================
def request_password_reset(db: Session, email: str, recorder: AccessRecorder) -> None:
    """
    Start a reset for ``email``. Callers must answer identically whether or
    not the address is registered.
    """
    user = user_crud.get_user_by_email(db, email)
    if not user:
        logger.info(f"Password reset requested for unknown email: {email}")
        return

    token = issue_reset_token(user)
    recorder.record(audit.PASSWORD_RESET_REQUEST, RESOURCE, user.id, success=True, user_id=user.id)

    # No mail transport: the token is handed over through the debug log
    logger.debug(f"Password reset token for {user.email}: {token}")


def reset_password(db: Session, data: schemas.ResetPasswordSchema, recorder: AccessRecorder):
    if data.new_password != data.confirm_password:
        raise ValidationError("Passwords do not match")

    password_errors = validate_password(data.new_password)
    if password_errors:
        raise ValidationError(password_errors[0])

    user = None
    claims = parse_reset_token(data.token)
    if claims:
        try:
            user = user_crud.get_user_by_id(db, uuid.UUID(claims["sub"]))
        except ValueError:
            user = None

    if not user or not reset_token_matches(claims, user):
        recorder.record(audit.PASSWORD_RESET, RESOURCE, success=False)
        raise ValidationError("Invalid or expired reset token")

    user_crud.update_user(db, user, {"hashed_password": hash_password(data.new_password)})
    recorder.record(audit.PASSWORD_RESET, RESOURCE, user.id, success=True, user_id=user.id)
    logger.info(f"Password reset completed for {user.email}")
    return user
