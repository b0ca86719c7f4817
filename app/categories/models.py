import uuid
from dataclasses import dataclass

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from app.clock import utcnow
from app.database import Base


DEFAULT_COLOR = "#6366f1"


# Who a category belongs to
@dataclass(frozen=True)
class System:
    pass


@dataclass(frozen=True)
class OwnedBy:
    user_id: uuid.UUID


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uniq_categories_user_slug"),
        UniqueConstraint("user_id", "name", name="uniq_categories_user_name"),
        # NULL user_ids never collide in the constraints above, so predefined rows need their own
        Index("uniq_predefined_slug", "slug", unique=True,
              postgresql_where=text("user_id IS NULL"), sqlite_where=text("user_id IS NULL")),
        Index("uniq_predefined_name", "name", unique=True,
              postgresql_where=text("user_id IS NULL"), sqlite_where=text("user_id IS NULL")),
        CheckConstraint(
            "(is_predefined AND user_id IS NULL) OR (NOT is_predefined AND user_id IS NOT NULL)",
            name="ck_categories_owner",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(50), nullable=False)
    slug = Column(String(50), nullable=False)
    color = Column(String(7), nullable=False, default=DEFAULT_COLOR)
    is_predefined = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("User", back_populates="categories")

    @property
    def ownership(self):
        if self.is_predefined:
            return System()
        return OwnedBy(self.user_id)
