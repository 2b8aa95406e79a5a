import json
from typing import List, Optional

from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from modules.auth.controllers.auth_controller import get_current_user
from modules.auth.dependencies import require_permission
from modules.documents.controllers.request_metadata import get_request_metadata
from modules.documents.exceptions import DocumentBaseException, convert_to_http_exception
from modules.documents.models import DocumentSigningOrder, User
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import (
    AuditLogResponse, EnvelopeResponse, FieldCreate, FieldResponse, RecipientCreate,
    RecipientResponse, ReplacePdfResponse, RequestMetadata, SendDocumentRequest,
)
from modules.documents.services.document_send_service import DocumentSendService
from modules.documents.services.document_service import DocumentService

router = APIRouter(
    prefix="/documents",
    tags=["documents"]
)


@router.post("/upload", response_model=EnvelopeResponse)
async def upload_document(
    file: UploadFile = File(...),
    signing_order: DocumentSigningOrder = Form(DocumentSigningOrder.PARALLEL),
    allow_dictate_next_signer: bool = Form(False),
    form_values: Optional[str] = Form(None),
    current_user: User = Depends(require_permission("upload")),
    db: Session = Depends(get_db)
):
    try:
        parsed_form_values = json.loads(form_values) if form_values else None
    except json.JSONDecodeError:
        raise HTTPException(400, "form_values debe ser un objeto JSON")

    contents = await file.read()
    try:
        return DocumentService.upload_document(
            db,
            current_user.id,
            contents,
            file.filename,
            file.content_type,
            settings.upload_dir,
            settings.max_file_size,
            signing_order=signing_order,
            allow_dictate_next_signer=allow_dictate_next_signer,
            form_values=parsed_form_values,
        )
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.get("", response_model=List[EnvelopeResponse])
def list_documents(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return DocumentService.get_documents_by_user(db, current_user.id)


@router.get("/{envelope_id}", response_model=EnvelopeResponse)
def get_document(envelope_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return DocumentService.get_owned_envelope(db, envelope_id, current_user.id)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.post("/{envelope_id}/recipients", response_model=RecipientResponse)
def add_recipient(
    envelope_id: int,
    data: RecipientCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return DocumentService.add_recipient(db, envelope_id, current_user.id, data)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.post("/{envelope_id}/fields", response_model=FieldResponse)
def add_field(
    envelope_id: int,
    data: FieldCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return DocumentService.add_field(db, envelope_id, current_user.id, data)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.put("/{envelope_id}/pdf", response_model=ReplacePdfResponse)
async def replace_pdf(
    envelope_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(require_permission("upload")),
    db: Session = Depends(get_db)
):
    """
    Reemplaza el PDF de un borrador, eliminando los campos de páginas que ya no existen.
    """
    contents = await file.read()
    try:
        return DocumentService.replace_document_pdf(
            db, envelope_id, current_user.id, contents, file.filename,
            file.content_type, settings.upload_dir, settings.max_file_size
        )
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.post("/{envelope_id}/send", response_model=EnvelopeResponse)
def send_document(
    envelope_id: int,
    data: Optional[SendDocumentRequest] = None,
    current_user: User = Depends(require_permission("send")),
    request_metadata: RequestMetadata = Depends(get_request_metadata),
    db: Session = Depends(get_db)
):
    try:
        return DocumentSendService(db).send_document(
            envelope_id,
            user_id=current_user.id,
            request_metadata=request_metadata,
            send_email=data.send_email if data else None,
        )
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.get("/{envelope_id}/audit-logs", response_model=List[AuditLogResponse])
def get_audit_logs(envelope_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        envelope = DocumentService.get_owned_envelope(db, envelope_id, current_user.id)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)
    return EnvelopeRepository(db).find_audit_logs(envelope.id)
