import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


# -------- AUTH --------
class RegisterSchema(BaseModel):
    email: str = Field(..., max_length=255)
    # policy (length, letters, digits) is checked by the service so failures get audited
    password: str
    name: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _normalize_email(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        v = v.strip()
        if len(v) < 2 or len(v) > 50:
            raise ValueError("Name must be between 2 and 50 characters")
        return v


class LoginSchema(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Email and password are required")
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if not v:
            raise ValueError("Email and password are required")
        return v


class ProfileUpdateSchema(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _normalize_email(v) if v is not None else v

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2 or len(v) > 50:
            raise ValueError("Name must be between 2 and 50 characters")
        return v


class ForgotPasswordSchema(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _normalize_email(v)


class ResetPasswordSchema(BaseModel):
    token: str
    new_password: str
    confirm_password: str


# -------- OUTPUT --------
class UserDisplaySchema(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionOut(BaseModel):
    user_id: uuid.UUID
    email: str
    name: str
    role: str
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResult(BaseModel):
    user: UserDisplaySchema
    session: SessionOut
