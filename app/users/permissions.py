from fastapi import Depends
from loguru import logger

from app.errors import ForbiddenError
from app.security.sessions import SessionData
from app.users.auth import require_session
from app.users.models import ROLE_ADMIN


def require_role(role: str):
    required = role.strip().lower()

    def wrapper(session: SessionData = Depends(require_session)) -> SessionData:
        if session.role.strip().lower() != required:
            logger.warning(f"User {session.user_id} denied: role '{required}' required")
            raise ForbiddenError()
        return session

    return wrapper


require_admin = require_role(ROLE_ADMIN)
