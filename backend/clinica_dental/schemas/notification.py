from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    kind: Literal["info", "success", "warning", "error"] = "info"
    link: Optional[str] = None


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    message: str
    kind: str
    link: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime
    read: bool
