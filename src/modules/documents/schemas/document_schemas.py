from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field as PydanticField

from modules.documents.models import (
    DocumentSigningOrder, DocumentStatus, FieldType,
    RecipientRole, SendStatus, SigningStatus,
)


class DocumentAuth(str, Enum):
    ACCOUNT = "ACCOUNT"
    TWO_FACTOR_AUTH = "TWO_FACTOR_AUTH"
    PASSWORD = "PASSWORD"
    EXPLICIT_NONE = "EXPLICIT_NONE"


class RequestMetadata(BaseModel):
    """Who is calling, passed explicitly to every operation that writes audit logs"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def without_ip(self) -> "RequestMetadata":
        return self.model_copy(update={"ip_address": None})


class NextSigner(BaseModel):
    name: str
    email: EmailStr


class AccessAuthOptions(BaseModel):
    type: DocumentAuth = DocumentAuth.TWO_FACTOR_AUTH
    token: str


class RecipientCreate(BaseModel):
    email: EmailStr
    name: str = ""
    role: RecipientRole = RecipientRole.SIGNER
    signing_order: Optional[int] = None
    access_auth: List[DocumentAuth] = []
    action_auth: List[DocumentAuth] = []


class FieldCreate(BaseModel):
    recipient_id: int
    type: FieldType
    page: int = PydanticField(1, ge=1)
    position_x: float = 0
    position_y: float = 0
    width: float = 0
    height: float = 0
    autosign: bool = False
    field_meta: Optional[Dict[str, Any]] = None


class SignFieldRequest(BaseModel):
    value: str
    signature_image_as_base64: Optional[str] = None


class CompleteDocumentRequest(BaseModel):
    access_auth: Optional[AccessAuthOptions] = None
    next_signer: Optional[NextSigner] = None


class SendDocumentRequest(BaseModel):
    send_email: Optional[bool] = None


class RecipientResponse(BaseModel):
    id: int
    envelope_id: int
    email: str
    name: str
    role: RecipientRole
    signing_order: Optional[int] = None
    signing_status: SigningStatus
    send_status: SendStatus
    signed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FieldResponse(BaseModel):
    id: int
    secondary_id: str
    envelope_id: int
    recipient_id: int
    type: FieldType
    page: int
    position_x: float
    position_y: float
    width: float
    height: float
    custom_text: str
    inserted: bool
    autosign: bool
    field_meta: Optional[Dict[str, Any]] = None

    model_config = {"from_attributes": True}


class EnvelopeResponse(BaseModel):
    id: int
    title: str
    status: DocumentStatus
    signing_order: DocumentSigningOrder
    allow_dictate_next_signer: bool
    user_id: int
    team_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    recipients: List[RecipientResponse] = []

    model_config = {"from_attributes": True}


class AuditLogResponse(BaseModel):
    id: int
    envelope_id: int
    type: str
    data: Dict[str, Any]
    name: Optional[str] = None
    email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SigningViewResponse(BaseModel):
    envelope: EnvelopeResponse
    recipient: RecipientResponse
    fields: List[FieldResponse]
    is_recipients_turn: bool


class ReplacePdfResponse(BaseModel):
    envelope_id: int
    old_page_count: int
    new_page_count: int
    deleted_fields_count: int


def map_envelope_to_webhook_payload(envelope) -> Dict[str, Any]:
    """JSON-safe snapshot of the envelope and its recipients"""
    return EnvelopeResponse.model_validate(envelope).model_dump(mode="json")
