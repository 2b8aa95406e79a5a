from modules.documents.models import (
    AuditLogType, FieldType, Signature, SigningStatus,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import RequestMetadata
from modules.documents.services.auto_sign_service import AutoSignService

METADATA = RequestMetadata(ip_address="10.0.0.1", user_agent="pytest")


def run_auto_sign(session, envelope_id):
    repository = EnvelopeRepository(session)
    return repository.run_transaction(
        lambda tx: AutoSignService.resolve_auto_sign(tx, envelope_id, METADATA)
    )


def test_autofirma_completa_destinatario(session, make_envelope, make_recipient, make_field):
    envelope = make_envelope()
    bob = make_recipient(envelope, "bob@mail.com", name="Bob")
    sig = make_field(bob, FieldType.SIGNATURE, autosign=True)
    name = make_field(bob, FieldType.NAME, autosign=True)

    result = run_auto_sign(session, envelope.id)

    session.refresh(bob)
    assert result.signed_recipients == {bob.id}
    assert bob.signing_status == SigningStatus.SIGNED
    assert bob.signed_at is not None

    session.refresh(sig)
    session.refresh(name)
    assert sig.inserted and sig.custom_text == "Bob"
    assert name.inserted

    signature = session.query(Signature).filter(Signature.field_id == sig.id).one()
    assert signature.typed_signature == "Bob"
    # solo los campos de firma generan Signature
    assert session.query(Signature).count() == 1

    logs = EnvelopeRepository(session).find_audit_logs(envelope.id)
    assert [l.type for l in logs] == [
        AuditLogType.DOCUMENT_FIELD_INSERTED.value,
        AuditLogType.DOCUMENT_FIELD_INSERTED.value,
        AuditLogType.DOCUMENT_RECIPIENT_COMPLETED.value,
    ]
    assert all(l.ip_address is None for l in logs)
    assert logs[-1].data["action_auth"] == []


def test_autofirma_usa_email_sin_nombre(session, make_envelope, make_recipient, make_field):
    envelope = make_envelope()
    bob = make_recipient(envelope, "bob@mail.com")
    sig = make_field(bob, FieldType.SIGNATURE, autosign=True)

    run_auto_sign(session, envelope.id)

    session.refresh(sig)
    assert sig.custom_text == "bob@mail.com"


def test_autofirma_parcial_no_completa(session, make_envelope, make_recipient, make_field):
    envelope = make_envelope()
    bob = make_recipient(envelope, "bob@mail.com", name="Bob")
    make_field(bob, FieldType.SIGNATURE, autosign=True)
    make_field(bob, FieldType.DATE)

    result = run_auto_sign(session, envelope.id)

    session.refresh(bob)
    assert result.touched_recipients == {bob.id}
    assert result.signed_recipients == set()
    assert bob.signing_status == SigningStatus.NOT_SIGNED


def test_autofirma_es_idempotente(session, make_envelope, make_recipient, make_field):
    envelope = make_envelope()
    bob = make_recipient(envelope, "bob@mail.com", name="Bob")
    make_field(bob, FieldType.SIGNATURE, autosign=True)

    run_auto_sign(session, envelope.id)
    logs_before = len(EnvelopeRepository(session).find_audit_logs(envelope.id))

    result = run_auto_sign(session, envelope.id)

    assert result.touched_recipients == set()
    assert len(EnvelopeRepository(session).find_audit_logs(envelope.id)) == logs_before
    assert session.query(Signature).count() == 1


def test_autofirma_no_toca_rechazados(session, make_envelope, make_recipient, make_field):
    envelope = make_envelope()
    bob = make_recipient(envelope, "bob@mail.com", name="Bob", signing_status=SigningStatus.REJECTED)
    make_field(bob, FieldType.SIGNATURE, autosign=True)

    result = run_auto_sign(session, envelope.id)

    session.refresh(bob)
    assert bob.signing_status == SigningStatus.REJECTED
    assert result.signed_recipients == set()
