import os
import secrets

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest

from database import Base, SessionLocal, engine
from helpers import RecordingDispatcher, RecordingWebhooks, make_pdf_bytes
from modules.auth.services.auth_service import AuthService
from modules.documents.models import (
    DocumentSigningOrder, DocumentStatus, Envelope, Field, FieldType,
    Recipient, RecipientRole, User, UserRole,
)
# Registra el resto de tablas
from modules.jobs.models.background_job import BackgroundJob  # noqa: F401
from modules.notifications.models.notification import Notification  # noqa: F401
from modules.webhooks.models.webhook import Webhook  # noqa: F401


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session():
    with SessionLocal() as s:
        yield s


@pytest.fixture
def owner(session):
    user = User(
        name="Carlos López",
        email="carlos@empresa.com",
        password_hash=AuthService.get_password_hash("carlos123"),
        role=UserRole.ADMIN,
        team_id=None,
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "contrato.pdf"
    path.write_bytes(make_pdf_bytes(pages=2))
    return str(path)


@pytest.fixture
def make_envelope(session, owner, pdf_file):
    def _make(
        status=DocumentStatus.PENDING,
        signing_order=DocumentSigningOrder.PARALLEL,
        allow_dictate_next_signer=False,
        auth_options=None,
        title="contrato.pdf",
    ):
        envelope = Envelope(
            title=title,
            file_path=pdf_file,
            file_size=os.path.getsize(pdf_file),
            status=status,
            signing_order=signing_order,
            allow_dictate_next_signer=allow_dictate_next_signer,
            auth_options=auth_options,
            user_id=owner.id,
        )
        session.add(envelope)
        session.commit()
        return envelope
    return _make


@pytest.fixture
def make_recipient(session):
    def _make(envelope, email, name="", role=RecipientRole.SIGNER, signing_order=None, **kwargs):
        recipient = Recipient(
            envelope_id=envelope.id,
            email=email,
            name=name,
            role=role,
            signing_order=signing_order,
            token=secrets.token_urlsafe(16),
            **kwargs,
        )
        session.add(recipient)
        session.commit()
        return recipient
    return _make


@pytest.fixture
def make_field(session):
    def _make(recipient, type=FieldType.SIGNATURE, inserted=False, autosign=False, field_meta=None, page=1):
        field = Field(
            envelope_id=recipient.envelope_id,
            recipient_id=recipient.id,
            type=type,
            page=page,
            inserted=inserted,
            autosign=autosign,
            field_meta=field_meta,
        )
        session.add(field)
        session.commit()
        return field
    return _make


@pytest.fixture
def dispatcher(session):
    return RecordingDispatcher(session)


@pytest.fixture
def webhooks():
    return RecordingWebhooks()
