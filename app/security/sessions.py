"""
Session codec.

A session is a self-contained HS256 JWT stored in an HTTP-only cookie.
Tokens are stateless: they stay valid until their absolute expiry
(issued-at + SESSION_EXPIRE_DAYS) and cannot be revoked earlier. Logging
out only deletes the cookie; rotating SECRET_KEY invalidates every
outstanding session at once.
"""
import enum
import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from app.clock import utcnow
from app.config import settings


PASSWORD_RESET_PURPOSE = "password_reset"


class SessionData(BaseModel):
    user_id: uuid.UUID
    email: str
    name: str
    role: str
    created_at: datetime
    expires_at: datetime


class SessionStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    ABSENT = "absent"


@dataclass
class SessionResult:
    status: SessionStatus
    session: Optional[SessionData] = None


def _to_timestamp(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def issue_session(user, created_at: Optional[datetime] = None, issued_at: Optional[datetime] = None):
    """
    Build a session for ``user`` and its signed token.

    ``created_at`` is kept across re-issues (profile update); the expiry is
    always counted from ``issued_at``.
    """
    issued_at = (issued_at or utcnow()).replace(microsecond=0)
    created_at = (created_at or issued_at).replace(microsecond=0)
    expires_at = issued_at + timedelta(days=settings.SESSION_EXPIRE_DAYS)

    claims = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "created_at": _to_timestamp(created_at),
        "iat": _to_timestamp(issued_at),
        "exp": _to_timestamp(expires_at),
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    session = SessionData(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        created_at=created_at,
        expires_at=expires_at,
    )
    return session, token


def parse_session(token: Optional[str]) -> SessionResult:
    """Decode a session token. Never raises; bad input yields MALFORMED."""
    if not token:
        return SessionResult(SessionStatus.ABSENT)

    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        return SessionResult(SessionStatus.EXPIRED)
    except JWTError:
        return SessionResult(SessionStatus.MALFORMED)

    # reset tokens are signed with the same key but never open a session
    if claims.get("purpose"):
        return SessionResult(SessionStatus.MALFORMED)

    try:
        session = SessionData(
            user_id=claims["sub"],
            email=claims["email"],
            name=claims["name"],
            role=claims["role"],
            created_at=_from_timestamp(claims.get("created_at", claims["iat"])),
            expires_at=_from_timestamp(claims["exp"]),
        )
    except (KeyError, TypeError, ValueError, OverflowError, SchemaValidationError):
        return SessionResult(SessionStatus.MALFORMED)

    return SessionResult(SessionStatus.VALID, session)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


# ================= PASSWORD RESET =================
def _password_fingerprint(hashed_password: str) -> str:
    # Changes as soon as the password does, so a reset token works once
    return hashlib.sha256(hashed_password.encode("utf-8")).hexdigest()[:16]


def issue_reset_token(user) -> str:
    issued_at = utcnow()
    claims = {
        "sub": str(user.id),
        "purpose": PASSWORD_RESET_PURPOSE,
        "fp": _password_fingerprint(user.hashed_password),
        "iat": _to_timestamp(issued_at),
        "exp": _to_timestamp(issued_at + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def parse_reset_token(token: str) -> Optional[dict]:
    """Return the reset claims, or None for expired, forged or non-reset tokens."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("purpose") != PASSWORD_RESET_PURPOSE or "sub" not in claims:
        return None
    return claims


def reset_token_matches(claims: dict, user) -> bool:
    return claims.get("fp") == _password_fingerprint(user.hashed_password)
