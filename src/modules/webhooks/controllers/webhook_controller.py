from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from modules.auth.controllers.auth_controller import get_current_user
from modules.documents.exceptions import DocumentBaseException, convert_to_http_exception
from modules.documents.models.user import User
from modules.webhooks.schemas import WebhookCreate, WebhookResponse
from modules.webhooks.services.webhook_service import WebhookService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("", response_model=WebhookResponse, status_code=status.HTTP_201_CREATED)
def create_webhook(
    data: WebhookCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WebhookService(db).create_webhook(
        user_id=current_user.id,
        webhook_url=str(data.webhook_url),
        event_triggers=data.event_triggers,
        secret=data.secret,
        enabled=data.enabled,
        team_id=current_user.team_id,
    )


@router.get("", response_model=List[WebhookResponse])
def list_webhooks(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return WebhookService(db).list_webhooks(current_user.id)


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_webhook(webhook_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        WebhookService(db).delete_webhook(current_user.id, webhook_id)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)
