import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SLUG_PATTERN = r"^[a-z0-9-]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ================= CREATE =================
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    slug: str = Field(..., min_length=1, max_length=50, pattern=SLUG_PATTERN)
    color: str = Field(..., pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Category name must not be empty")
        return v


# ================= UPDATE =================
class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    slug: Optional[str] = Field(None, min_length=1, max_length=50, pattern=SLUG_PATTERN)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Category name must not be empty")
        return v


# ================= RESPONSE =================
class CategoryOut(BaseModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID]
    name: str
    slug: str
    color: str
    is_predefined: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
