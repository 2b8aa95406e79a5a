from dataclasses import dataclass, field
from typing import List, Optional

from modules.documents.models import Envelope, Recipient
from modules.documents.schemas import DocumentAuth


@dataclass
class DocumentAuthMethods:
    derived_recipient_access_auth: List[DocumentAuth] = field(default_factory=list)
    derived_recipient_action_auth: List[DocumentAuth] = field(default_factory=list)


def _parse(values: Optional[list]) -> List[DocumentAuth]:
    return [DocumentAuth(value) for value in (values or [])]


def extract_document_auth_methods(envelope: Envelope, recipient: Recipient) -> DocumentAuthMethods:
    """
    Resolve which auth methods apply to a recipient.

    Recipient level settings override the envelope's global ones;
    EXPLICIT_NONE on the recipient disables the global requirement.
    """
    document_auth = envelope.auth_options or {}
    recipient_auth = recipient.auth_options or {}

    access_auth = _parse(recipient_auth.get("access_auth")) or _parse(document_auth.get("global_access_auth"))
    action_auth = _parse(recipient_auth.get("action_auth")) or _parse(document_auth.get("global_action_auth"))

    return DocumentAuthMethods(
        derived_recipient_access_auth=[a for a in access_auth if a != DocumentAuth.EXPLICIT_NONE],
        derived_recipient_action_auth=[a for a in action_auth if a != DocumentAuth.EXPLICIT_NONE],
    )
