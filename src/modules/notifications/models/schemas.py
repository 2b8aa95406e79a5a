from typing import Optional

from pydantic import BaseModel
from datetime import datetime

class NotificationResponse(BaseModel):
    id: int
    kind: str
    title: str
    message: str
    created_at: datetime
    updated_at: datetime
    user_id: int
    envelope_id: Optional[int] = None
    read: bool = False

    model_config = {"from_attributes": True}
