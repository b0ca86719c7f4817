from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    has_next: bool
    has_prev: bool


class Envelope(BaseModel, Generic[T]):
    """Uniform response body shared by every endpoint."""

    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        has_next=page * limit < total,
        has_prev=page > 1,
    )
