import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AccessLogOut(BaseModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID]
    action: str
    resource: str
    resource_id: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    success: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CleanupResult(BaseModel):
    deleted: int
