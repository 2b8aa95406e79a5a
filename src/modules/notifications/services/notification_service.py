# modules/notifications/services/notification_service.py
from typing import List, Optional

from modules.notifications.models.notification import Notification
from modules.notifications.repositories.notification_repository import NotificationRepository

class NotificationTemplate:
    kind = "GENERIC"

    def __init__(self, user_id: int, title: str, message: str, envelope_id: Optional[int] = None):
        self.user_id = user_id
        self.title = title
        self.message = message
        self.envelope_id = envelope_id

    def to_dict(self):
        return {
            'kind': self.kind,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'envelope_id': self.envelope_id,
        }

class SigningRequestedNotification(NotificationTemplate):
    kind = "SIGNING_REQUESTED"

    def __init__(self, user_id: int, envelope_id: int, document_title: str, sender_name: str):
        title = "Firma solicitada"
        message = f"{sender_name} te ha enviado el documento '{document_title}' para firmar."
        super().__init__(user_id, title, message, envelope_id)

class RecipientSignedNotification(NotificationTemplate):
    kind = "RECIPIENT_SIGNED"

    def __init__(self, user_id: int, envelope_id: int, document_title: str, recipient_name: str):
        title = "Destinatario ha firmado"
        message = f"{recipient_name} ha completado el documento '{document_title}'."
        super().__init__(user_id, title, message, envelope_id)

class DocumentPendingNotification(NotificationTemplate):
    kind = "DOCUMENT_PENDING"

    def __init__(self, user_id: int, envelope_id: int, document_title: str):
        title = "Documento pendiente"
        message = f"Has firmado '{document_title}'. Esperando a los demás destinatarios."
        super().__init__(user_id, title, message, envelope_id)

class DocumentCompletedNotification(NotificationTemplate):
    kind = "DOCUMENT_COMPLETED"

    def __init__(self, user_id: int, envelope_id: int, document_title: str):
        title = "Documento completado"
        message = f"Todos los destinatarios han firmado '{document_title}'."
        super().__init__(user_id, title, message, envelope_id)

class NotificationService:
    def __init__(self, repository: NotificationRepository):
        self.notification_repository = repository

    def notify(self, template: NotificationTemplate) -> Notification:
        notif = Notification(**template.to_dict())
        return self.notification_repository.save(notif)

    def get_notifications(self, user_id: int) -> List[Notification]:
        return self.notification_repository.find_by_user_id(user_id)

    def mark_as_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        notif = self.notification_repository.find_by_id(notification_id)
        if not notif or notif.user_id != user_id:
            return None
        return self.notification_repository.update(notif, {'read': True})
