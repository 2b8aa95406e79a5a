import os
import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from modules.documents.exceptions import InvalidStateError, NotFoundError, ValidationError
from modules.documents.models import (
    AuditLogType, DocumentSigningOrder, DocumentStatus, Envelope, Field,
    Recipient, SIGNATURE_FIELD_TYPES, SigningStatus, User, UserRole,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import FieldCreate, RecipientCreate, RequestMetadata, SignFieldRequest
from modules.documents.services.audit_log_service import (
    create_document_audit_log_data, recipient_audit_data,
)
from modules.documents.services.pdf_service import page_count
from modules.documents.services.recipient_progression_service import RecipientProgressionService
from logger import get_logger

logger = get_logger(__name__)


class DocumentService:

    @staticmethod
    def get_documents_by_user(session: Session, user_id: int) -> list[Envelope]:
        """
        Obtiene todos los documentos de un usuario (o de su equipo)
        """
        user = session.get(User, user_id)

        query = session.query(Envelope)
        if user.role == UserRole.ADMIN and user.team_id is not None:
            query = query.filter(or_(Envelope.team_id == user.team_id, Envelope.user_id == user_id))
        else:
            query = query.filter(Envelope.user_id == user_id)
        return query.order_by(Envelope.created_at.desc(), Envelope.id.desc()).all()

    @staticmethod
    def get_owned_envelope(session: Session, envelope_id: int, user_id: int) -> Envelope:
        envelope = EnvelopeRepository(session).find_envelope(envelope_id, user_id=user_id)
        if not envelope:
            raise NotFoundError("Documento no encontrado", {"envelope_id": envelope_id})
        return envelope

    @staticmethod
    def upload_document(
        session: Session,
        user_id: int,
        file_contents: bytes,
        filename: str,
        content_type: str,
        upload_dir: str,
        max_file_size: int = 10 * 1024 * 1024,  # 10 MB por defecto
        signing_order: DocumentSigningOrder = DocumentSigningOrder.PARALLEL,
        allow_dictate_next_signer: bool = False,
        form_values: Optional[Dict[str, Any]] = None,
        auth_options: Optional[Dict[str, Any]] = None,
    ) -> Envelope:
        """
        Procesa y guarda un documento completo:
        - Valida el archivo
        - Determina nombre único
        - Guarda archivo físico
        - Crea el sobre en DRAFT
        """

        # 1) Validaciones
        DocumentService._validate_file(file_contents, filename, content_type, max_file_size)

        # 2) Determinar nombre único
        unique_name = DocumentService._get_unique_filename(session, user_id, filename)

        # 3) Guardar archivo físico
        file_path = DocumentService._store_file(upload_dir, user_id, unique_name, file_contents)

        # 4) Crear registro en BD
        user = session.get(User, user_id)
        envelope = Envelope(
            title=unique_name,
            file_path=file_path,
            file_size=len(file_contents),
            status=DocumentStatus.DRAFT,
            signing_order=signing_order,
            allow_dictate_next_signer=allow_dictate_next_signer,
            form_values=form_values,
            auth_options=auth_options,
            user_id=user_id,
            team_id=user.team_id if user else None,
        )
        session.add(envelope)
        session.commit()
        session.refresh(envelope)

        logger.info("Document uploaded", envelope_id=envelope.id, user_id=user_id, title=unique_name)
        return envelope

    @staticmethod
    def add_recipient(session: Session, envelope_id: int, user_id: int, data: RecipientCreate) -> Recipient:
        envelope = DocumentService.get_owned_envelope(session, envelope_id, user_id)
        if envelope.status == DocumentStatus.COMPLETED:
            raise InvalidStateError("No se pueden añadir destinatarios a un documento completado",
                                    {"envelope_id": envelope_id})

        auth_options = None
        if data.access_auth or data.action_auth:
            auth_options = {
                "access_auth": [a.value for a in data.access_auth],
                "action_auth": [a.value for a in data.action_auth],
            }

        recipient = Recipient(
            envelope_id=envelope.id,
            email=data.email,
            name=data.name,
            role=data.role,
            signing_order=data.signing_order,
            token=secrets.token_urlsafe(32),
            auth_options=auth_options,
        )
        session.add(recipient)
        session.commit()
        session.refresh(recipient)
        return recipient

    @staticmethod
    def add_field(session: Session, envelope_id: int, user_id: int, data: FieldCreate) -> Field:
        envelope = DocumentService.get_owned_envelope(session, envelope_id, user_id)
        if envelope.status == DocumentStatus.COMPLETED:
            raise InvalidStateError("No se pueden añadir campos a un documento completado",
                                    {"envelope_id": envelope_id})

        recipient = session.get(Recipient, data.recipient_id)
        if not recipient or recipient.envelope_id != envelope.id:
            raise NotFoundError("Destinatario no encontrado", {"recipient_id": data.recipient_id})

        with open(envelope.file_path, "rb") as f:
            pages = page_count(f.read())
        if data.page > pages:
            raise ValidationError(
                f"El documento solo tiene {pages} páginas",
                {"page": data.page, "page_count": pages},
            )

        field = Field(envelope_id=envelope.id, **data.model_dump())
        session.add(field)
        session.commit()
        session.refresh(field)
        return field

    @staticmethod
    def replace_document_pdf(
        session: Session,
        envelope_id: int,
        user_id: int,
        file_contents: bytes,
        filename: str,
        content_type: str,
        upload_dir: str,
        max_file_size: int = 10 * 1024 * 1024,
    ) -> dict:
        """
        Reemplaza el PDF de un borrador.

        Si el nuevo PDF tiene menos páginas, se eliminan los campos de las
        páginas que ya no existen. Las páginas nuevas quedan sin campos.
        """
        envelope = DocumentService.get_owned_envelope(session, envelope_id, user_id)
        if envelope.status != DocumentStatus.DRAFT:
            raise InvalidStateError("Solo se puede reemplazar el PDF de un borrador",
                                    {"envelope_id": envelope_id, "status": envelope.status.value})

        DocumentService._validate_file(file_contents, filename, content_type, max_file_size)

        with open(envelope.file_path, "rb") as f:
            old_page_count = page_count(f.read())
        new_page_count = page_count(file_contents)

        deleted_fields_count = 0
        if new_page_count < old_page_count:
            deleted_fields_count = (
                session.query(Field)
                .filter(Field.envelope_id == envelope.id, Field.page > new_page_count)
                .delete(synchronize_session="fetch")
            )

        envelope.file_path = DocumentService._store_file(
            upload_dir, user_id, f"{envelope.id}_{filename}", file_contents
        )
        envelope.file_size = len(file_contents)
        session.commit()

        logger.info(
            "Document PDF replaced",
            envelope_id=envelope.id,
            old_page_count=old_page_count,
            new_page_count=new_page_count,
            deleted_fields=deleted_fields_count,
        )
        return {
            "envelope_id": envelope.id,
            "old_page_count": old_page_count,
            "new_page_count": new_page_count,
            "deleted_fields_count": deleted_fields_count,
        }

    @staticmethod
    def sign_field_with_token(
        session: Session,
        recipient_token: str,
        field_id: int,
        data: SignFieldRequest,
        request_metadata: Optional[RequestMetadata] = None,
    ) -> Field:
        """Inserta el valor de un campo en nombre del destinatario."""
        repository = EnvelopeRepository(session)

        recipient = repository.find_recipient_by_token(recipient_token)
        if not recipient:
            raise NotFoundError("Destinatario no encontrado")
        envelope = recipient.envelope

        if envelope.status != DocumentStatus.PENDING:
            raise InvalidStateError("El documento no está pendiente de firma",
                                    {"envelope_id": envelope.id, "status": envelope.status.value})
        if recipient.signing_status != SigningStatus.NOT_SIGNED:
            raise InvalidStateError("El destinatario ya completó el documento",
                                    {"recipient_id": recipient.id})
        if (envelope.signing_order == DocumentSigningOrder.SEQUENTIAL
                and not RecipientProgressionService.is_recipients_turn(repository, recipient_token)):
            raise InvalidStateError("Aún no es el turno de este destinatario",
                                    {"recipient_id": recipient.id})

        field = repository.find_field(field_id)
        if not field or field.recipient_id != recipient.id:
            raise NotFoundError("Campo no encontrado", {"field_id": field_id})
        if field.inserted:
            raise InvalidStateError("El campo ya fue completado", {"field_id": field_id})

        def body(tx):
            if field.type in SIGNATURE_FIELD_TYPES:
                tx.create_signature({
                    "field_id": field.id,
                    "recipient_id": recipient.id,
                    "typed_signature": None if data.signature_image_as_base64 else data.value,
                    "signature_image_as_base64": data.signature_image_as_base64,
                })
            tx.update_field(field.id, {"inserted": True, "custom_text": data.value})
            tx.create_audit_log_entry(create_document_audit_log_data(
                AuditLogType.DOCUMENT_FIELD_INSERTED,
                envelope.id,
                data=recipient_audit_data(
                    recipient,
                    field_id=field.secondary_id,
                    field={"type": field.type.value, "data": data.value},
                ),
                name=recipient.name,
                email=recipient.email,
                request_metadata=request_metadata,
            ))

        repository.run_transaction(body)
        return field

    @staticmethod
    def _validate_file(file_contents: bytes, filename: str, content_type: str, max_file_size: int):
        """Valida el archivo subido"""

        # Validar MIME type
        if content_type != "application/pdf":
            raise ValidationError("El archivo debe ser un PDF")

        # Validar extensión
        if not filename.lower().endswith(".pdf"):
            raise ValidationError("La extensión debe ser .pdf")

        # Validar tamaño
        if len(file_contents) > max_file_size:
            raise ValidationError(f"El tamaño máximo es {max_file_size // (1024*1024)} MB")

        # Validar integridad del PDF
        page_count(file_contents)

    @staticmethod
    def _store_file(upload_dir: str, user_id: int, name: str, file_contents: bytes) -> str:
        user_dir = os.path.join(upload_dir, str(user_id))
        os.makedirs(user_dir, exist_ok=True)

        file_path = os.path.join(user_dir, f"{datetime.utcnow():%Y%m%d%H%M%S%f}_{name}")
        with open(file_path, "wb") as f:
            f.write(file_contents)
        return file_path

    @staticmethod
    def _get_unique_filename(session: Session, user_id: int, original_name: str) -> str:
        """Determina el nombre único que se usará para el documento"""

        base, ext = os.path.splitext(original_name)

        # Títulos existentes del usuario con el mismo nombre base
        existing = [
            row[0] for row in
            session.query(Envelope.title)
            .filter(
                Envelope.user_id == user_id,
                or_(
                    Envelope.title == original_name,
                    Envelope.title.like(f"{base}_%{ext}")
                )
            )
            .all()
        ]

        if not existing:
            return original_name

        used_numbers = set()
        for existing_name in existing:
            if existing_name == original_name:
                used_numbers.add(0)
                continue
            suffix = existing_name[len(base) + 1:len(existing_name) - len(ext)]
            if suffix.isdigit():
                used_numbers.add(int(suffix))

        next_num = 1
        while next_num in used_numbers:
            next_num += 1

        return f"{base}_{next_num}{ext}"
