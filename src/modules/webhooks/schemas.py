from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, HttpUrl

from modules.webhooks.models.webhook import WebhookTriggerEvent


class WebhookCreate(BaseModel):
    webhook_url: HttpUrl
    event_triggers: List[WebhookTriggerEvent]
    secret: Optional[str] = None
    enabled: bool = True


class WebhookResponse(BaseModel):
    id: int
    webhook_url: str
    event_triggers: List[WebhookTriggerEvent]
    enabled: bool
    user_id: int
    team_id: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}
