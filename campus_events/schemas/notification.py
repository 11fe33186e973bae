"""
Notification inbox schemas.
"""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    """Schema for one inbox entry."""

    message: str
    metadata: Dict[str, Any]
    created_at: datetime
    read: bool

    model_config = ConfigDict(from_attributes=True)


class MarkReadResponse(BaseModel):
    marked: int
