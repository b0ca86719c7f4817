from typing import Optional

from fastapi import Depends, Request
from loguru import logger
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import UnauthenticatedError
from app.security.sessions import SessionData, SessionStatus, parse_session
from app.users import crud as user_crud


def get_current_session(request: Request, db: Session = Depends(get_db)) -> Optional[SessionData]:
    """
    Resolve the session from the request cookie.

    Returns None for a missing, expired or tampered token and for tokens of
    users that no longer exist. The 401 handler clears the stale cookie.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    result = parse_session(token)

    if result.status is SessionStatus.EXPIRED:
        logger.info("Session token expired")
        return None
    if result.status is SessionStatus.MALFORMED:
        logger.warning("Rejected malformed session token")
        return None
    if result.status is not SessionStatus.VALID:
        return None

    if user_crud.get_user_by_id(db, result.session.user_id) is None:
        logger.warning(f"Session for unknown user {result.session.user_id}")
        return None

    return result.session


def require_session(session: Optional[SessionData] = Depends(get_current_session)) -> SessionData:
    if session is None:
        raise UnauthenticatedError()
    return session
