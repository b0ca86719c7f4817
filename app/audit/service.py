"""
Audit log sink.

Security-relevant actions (auth events and every write/export of a
resource) are appended to ``access_logs``. Recording is best-effort: the
sink writes through its own session so the caller's transaction is never
touched, and any failure is logged locally and dropped.
"""
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Request
from loguru import logger
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.config import settings
from app.database import SessionLocal
from app.security.sessions import SessionStatus, parse_session
from . import models


# Actions
REGISTER = "REGISTER"
LOGIN = "LOGIN"
LOGOUT = "LOGOUT"
READ = "READ"
CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
EXPORT = "EXPORT"
PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
PASSWORD_RESET = "PASSWORD_RESET"

UNKNOWN = "unknown"


@dataclass
class AccessEntry:
    action: str
    resource: str
    resource_id: str = UNKNOWN
    success: bool = True
    user_id: Optional[uuid.UUID] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditSink:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def record(self, entry: AccessEntry) -> None:
        try:
            db = self._session_factory()
        except Exception as e:
            logger.warning(f"Audit log skipped ({entry.action} {entry.resource}): {e}")
            return

        try:
            db.add(
                models.AccessLog(
                    user_id=entry.user_id,
                    action=entry.action,
                    resource=entry.resource,
                    resource_id=str(entry.resource_id)[:100],
                    success=entry.success,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                )
            )
            db.commit()
        except Exception as e:
            db.rollback()
            logger.warning(f"Failed to record access log ({entry.action} {entry.resource}): {e}")
        finally:
            db.close()


audit_sink = AuditSink()


class AccessRecorder:
    """Audit sink bound to the client details of one request."""

    def __init__(self, sink: AuditSink, ip_address: Optional[str], user_agent: Optional[str]):
        self.sink = sink
        self.ip_address = ip_address or UNKNOWN
        self.user_agent = user_agent or UNKNOWN

    def record(
        self,
        action: str,
        resource: str,
        resource_id=UNKNOWN,
        success: bool = True,
        user_id: Optional[uuid.UUID] = None,
    ) -> None:
        self.sink.record(
            AccessEntry(
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else UNKNOWN,
                success=success,
                user_id=user_id,
                ip_address=self.ip_address,
                user_agent=self.user_agent,
            )
        )


def get_access_recorder(request: Request) -> AccessRecorder:
    return AccessRecorder(
        audit_sink,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ================= REJECTED REQUESTS =================
# Requests refused by schema validation never reach their route,
# so the validation handler records them from the method and path.
AUTH_ACTIONS = {
    ("POST", "register"): REGISTER,
    ("POST", "login"): LOGIN,
    ("PUT", "me"): UPDATE,
    ("POST", "forgot-password"): PASSWORD_RESET_REQUEST,
    ("POST", "reset-password"): PASSWORD_RESET,
}
WRITE_ACTIONS = {"POST": CREATE, "PUT": UPDATE, "DELETE": DELETE}
AUDITED_RESOURCES = {"categories", "expenses"}


def classify_request(method: str, path: str):
    """Return (action, resource, resource_id) for an audited request, else None."""
    parts = [part for part in path.split("/") if part]
    if not parts:
        return None

    method = method.upper()
    if parts[0] == "auth" and len(parts) == 2:
        action = AUTH_ACTIONS.get((method, parts[1]))
        return (action, "user", UNKNOWN) if action else None

    if parts[0] in AUDITED_RESOURCES and method in WRITE_ACTIONS:
        resource_id = parts[1] if len(parts) > 1 else UNKNOWN
        return WRITE_ACTIONS[method], parts[0], resource_id

    return None


def record_rejected_request(request: Request) -> None:
    classified = classify_request(request.method, request.url.path)
    if classified is None:
        return

    action, resource, resource_id = classified
    result = parse_session(request.cookies.get(settings.SESSION_COOKIE_NAME))
    user_id = result.session.user_id if result.status is SessionStatus.VALID else None

    get_access_recorder(request).record(action, resource, resource_id, success=False, user_id=user_id)


# ================= READ / MAINTENANCE =================
def list_user_logs(db: Session, user_id: uuid.UUID, limit: int = 50):
    return (
        db.query(models.AccessLog)
        .filter(models.AccessLog.user_id == user_id)
        .order_by(models.AccessLog.created_at.desc())
        .limit(limit)
        .all()
    )


def clean_old_logs(db: Session, days_old: int = 90) -> int:
    cutoff = utcnow() - timedelta(days=days_old)
    deleted = (
        db.query(models.AccessLog)
        .filter(models.AccessLog.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Removed {deleted} access log entries older than {days_old} days")
    return deleted
