import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from app.clock import utcnow
from app.database import Base


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("idx_expenses_user_date", "user_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Deleting a category keeps its expenses; they show up as "unknown"
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("User", back_populates="expenses")
    category = relationship("Category")
