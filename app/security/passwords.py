import re
from typing import List

from passlib.context import CryptContext

from app.config import settings


MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 100

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__rounds=settings.PASSWORD_HASH_ROUNDS,
)


def hash_password(plain_password: str) -> str:
    """Return Argon2 hash for plain_password."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, stored_hash: str) -> bool:
    """Verify a candidate password against a stored Argon2 hash."""
    try:
        return pwd_context.verify(plain_password, stored_hash)
    except (ValueError, TypeError):
        # unknown or corrupted hash format
        return False


def validate_password(plain_password: str) -> List[str]:
    """
    Check a candidate password against the acceptance policy.
    Returns every violated rule; an empty list means the password is acceptable.
    """
    errors = []

    if len(plain_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if len(plain_password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password must not exceed {MAX_PASSWORD_LENGTH} characters")

    if not re.search(r"[A-Za-z]", plain_password):
        errors.append("Password must contain at least one letter")

    if not re.search(r"[0-9]", plain_password):
        errors.append("Password must contain at least one digit")

    return errors
