# src/modules/documents/controllers/signature_controller.py
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from database import get_db
from modules.documents.controllers.request_metadata import get_request_metadata
from modules.documents.exceptions import DocumentBaseException, convert_to_http_exception
from modules.documents.models import DocumentSigningOrder
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import (
    CompleteDocumentRequest, EnvelopeResponse, FieldResponse, RecipientResponse, RequestMetadata,
    SignFieldRequest, SigningViewResponse,
)
from modules.documents.services.document_completion_service import DocumentCompletionService
from modules.documents.services.document_service import DocumentService
from modules.documents.services.recipient_progression_service import RecipientProgressionService

router = APIRouter(
    prefix="/sign",
    tags=["signing"]
)


@router.get("/{token}", response_model=SigningViewResponse)
def get_signing_view(token: str, db: Session = Depends(get_db)):
    """
    Documento, destinatario y campos visibles para quien tiene el enlace de firma.
    """
    repository = EnvelopeRepository(db)
    recipient = repository.find_recipient_by_token(token)
    if not recipient:
        raise HTTPException(404, "Enlace de firma no válido")

    return SigningViewResponse(
        envelope=EnvelopeResponse.model_validate(recipient.envelope),
        recipient=RecipientResponse.model_validate(recipient),
        fields=[
            FieldResponse.model_validate(f)
            for f in repository.find_fields(recipient.envelope_id, recipient_id=recipient.id)
        ],
        is_recipients_turn=(
            recipient.envelope.signing_order != DocumentSigningOrder.SEQUENTIAL
            or RecipientProgressionService.is_recipients_turn(repository, token)
        ),
    )


@router.post("/{token}/fields/{field_id}", response_model=FieldResponse)
def sign_field(
    token: str,
    field_id: int,
    data: SignFieldRequest,
    request_metadata: RequestMetadata = Depends(get_request_metadata),
    db: Session = Depends(get_db)
):
    try:
        return DocumentService.sign_field_with_token(db, token, field_id, data, request_metadata)
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)


@router.post("/{token}/complete", response_model=EnvelopeResponse)
def complete_document(
    token: str,
    data: Optional[CompleteDocumentRequest] = None,
    request_metadata: RequestMetadata = Depends(get_request_metadata),
    db: Session = Depends(get_db)
):
    """
    El destinatario termina su parte; avanza al siguiente firmante o sella el documento.
    """
    recipient = EnvelopeRepository(db).find_recipient_by_token(token)
    if not recipient:
        raise HTTPException(404, "Enlace de firma no válido")

    data = data or CompleteDocumentRequest()
    try:
        return DocumentCompletionService(db).complete_recipient_action(
            recipient.envelope_id,
            token,
            request_metadata=request_metadata,
            next_signer=data.next_signer,
            access_auth_options=data.access_auth,
        )
    except DocumentBaseException as e:
        raise convert_to_http_exception(e)
