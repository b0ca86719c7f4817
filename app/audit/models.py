import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid

from app.clock import utcnow
from app.database import Base


class AccessLog(Base):
    __tablename__ = "access_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=True, index=True)  # NULL for anonymous / failed auth
    action = Column(String(100), nullable=False, index=True)
    resource = Column(String(100), nullable=False)
    resource_id = Column(String(100), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    success = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
