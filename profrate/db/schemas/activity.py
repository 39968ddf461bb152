import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class ActivityLogBase(BaseModel):
    action: str
    type: str
    username: Optional[str] = None
    role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ActivityLogCreate(ActivityLogBase):
    user_id: Optional[uuid.UUID] = None


class ActivityLog(ActivityLogBase):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    # Read from the ORM attribute that backs the 'metadata' column
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
