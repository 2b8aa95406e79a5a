from typing import Any, Dict, Optional

from modules.documents.models import AuditLogType, Recipient
from modules.documents.schemas import RequestMetadata


def create_document_audit_log_data(
    type: AuditLogType,
    envelope_id: int,
    data: Optional[Dict[str, Any]] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
    user_id: Optional[int] = None,
    request_metadata: Optional[RequestMetadata] = None,
) -> Dict[str, Any]:
    """
    Build the row for a DocumentAuditLog.

    System-initiated entries must be built with request_metadata.without_ip()
    so they can be told apart from human actions.
    """
    metadata = request_metadata or RequestMetadata()
    return {
        "type": type.value,
        "envelope_id": envelope_id,
        "data": data or {},
        "name": name,
        "email": email,
        "user_id": user_id,
        "ip_address": metadata.ip_address,
        "user_agent": metadata.user_agent,
    }


def recipient_audit_data(recipient: Recipient, **extra) -> Dict[str, Any]:
    data = {
        "recipient_email": recipient.email,
        "recipient_name": recipient.name or "",
        "recipient_id": recipient.id,
        "recipient_role": recipient.role.value,
    }
    data.update(extra)
    return data
