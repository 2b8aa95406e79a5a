from .document_service import DocumentService
from .document_state_service import DocumentStateService
from .document_completion_service import DocumentCompletionService
from .document_send_service import DocumentSendService

__all__ = ['DocumentService', 'DocumentStateService', 'DocumentCompletionService', 'DocumentSendService']
