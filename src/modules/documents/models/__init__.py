from .user import User, UserRole
from .envelope import Envelope, DocumentStatus, DocumentSigningOrder
from .recipient import Recipient, RecipientRole, SigningStatus, SendStatus
from .field import Field, FieldType, SIGNATURE_FIELD_TYPES
from .signature import Signature
from .audit_log import DocumentAuditLog, AuditLogType

__all__ = [
    'User', 'UserRole',
    'Envelope', 'DocumentStatus', 'DocumentSigningOrder',
    'Recipient', 'RecipientRole', 'SigningStatus', 'SendStatus',
    'Field', 'FieldType', 'SIGNATURE_FIELD_TYPES',
    'Signature',
    'DocumentAuditLog', 'AuditLogType',
]
