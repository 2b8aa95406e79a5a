from modules.documents.models import (
    AuditLogType, DocumentSigningOrder, RecipientRole, SendStatus, SigningStatus,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import NextSigner, RequestMetadata
from modules.documents.services.recipient_progression_service import RecipientProgressionService

METADATA = RequestMetadata(ip_address="10.0.0.1", user_agent="pytest")


def advance(session, envelope, just_completed, next_signer=None):
    repository = EnvelopeRepository(session)
    return repository.run_transaction(
        lambda tx: RecipientProgressionService.advance(tx, envelope, just_completed, next_signer, METADATA)
    )


def test_recipiente_activo_respeta_orden_y_nulos_al_final(make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL)
    sin_orden = make_recipient(envelope, "x@mail.com")
    segundo = make_recipient(envelope, "b@mail.com", signing_order=2)
    primero = make_recipient(envelope, "a@mail.com", signing_order=1)
    make_recipient(envelope, "cc@mail.com", role=RecipientRole.CC, signing_order=0)

    recipients = [sin_orden, segundo, primero]
    assert RecipientProgressionService.active_recipient(recipients).id == primero.id

    primero.signing_status = SigningStatus.SIGNED
    assert RecipientProgressionService.active_recipient(recipients).id == segundo.id

    segundo.signing_status = SigningStatus.SIGNED
    assert RecipientProgressionService.active_recipient(recipients).id == sin_orden.id


def test_es_turno_del_destinatario(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL)
    alice = make_recipient(envelope, "a@mail.com", signing_order=1)
    bob = make_recipient(envelope, "b@mail.com", signing_order=2)

    repository = EnvelopeRepository(session)
    assert RecipientProgressionService.is_recipients_turn(repository, alice.token) is True
    assert RecipientProgressionService.is_recipients_turn(repository, bob.token) is False
    assert RecipientProgressionService.is_recipients_turn(repository, "no-existe") is False


def test_secuencial_notifica_al_siguiente(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL)
    alice = make_recipient(envelope, "a@mail.com", signing_order=1, signing_status=SigningStatus.SIGNED)
    bob = make_recipient(envelope, "b@mail.com", signing_order=2)
    carol = make_recipient(envelope, "c@mail.com", signing_order=3)

    result = advance(session, envelope, alice)

    assert result.next_recipient.id == bob.id
    assert [r.id for r in result.recipients_to_notify] == [bob.id]
    assert [r.id for r in result.pending_recipients] == [bob.id, carol.id]
    session.refresh(bob)
    session.refresh(carol)
    assert bob.send_status == SendStatus.SENT
    assert carol.send_status == SendStatus.NOT_SENT


def test_secuencial_no_reenvia_si_ya_enviado(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL)
    alice = make_recipient(envelope, "a@mail.com", signing_order=1, signing_status=SigningStatus.SIGNED)
    make_recipient(envelope, "b@mail.com", signing_order=2, send_status=SendStatus.SENT)

    result = advance(session, envelope, alice)

    assert result.recipients_to_notify == []


def test_secuencial_sin_pendientes(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL)
    alice = make_recipient(envelope, "a@mail.com", signing_order=1, signing_status=SigningStatus.SIGNED)
    make_recipient(envelope, "cc@mail.com", role=RecipientRole.CC)

    result = advance(session, envelope, alice)

    assert result.next_recipient is None
    assert result.recipients_to_notify == []
    assert result.pending_recipients == []


def test_dictar_siguiente_firmante(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL, allow_dictate_next_signer=True)
    alice = make_recipient(envelope, "a@mail.com", name="Alice", signing_order=1, signing_status=SigningStatus.SIGNED)
    bob = make_recipient(envelope, "b@mail.com", name="Bob", signing_order=2, send_status=SendStatus.SENT)

    result = advance(session, envelope, alice, NextSigner(name="Dave", email="dave@mail.com"))

    session.refresh(bob)
    assert bob.name == "Dave"
    assert bob.email == "dave@mail.com"
    # otra persona: se notifica aunque el puesto ya estuviera enviado
    assert [r.id for r in result.recipients_to_notify] == [bob.id]

    logs = EnvelopeRepository(session).find_audit_logs(envelope.id)
    assert [l.type for l in logs] == [AuditLogType.RECIPIENT_UPDATED.value]
    assert logs[0].email == "a@mail.com"
    assert logs[0].ip_address == "10.0.0.1"
    assert logs[0].data["changes"][1] == {"type": "EMAIL", "from": "b@mail.com", "to": "dave@mail.com"}


def test_dictar_ignorado_si_no_permitido(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.SEQUENTIAL, allow_dictate_next_signer=False)
    alice = make_recipient(envelope, "a@mail.com", signing_order=1, signing_status=SigningStatus.SIGNED)
    bob = make_recipient(envelope, "b@mail.com", name="Bob", signing_order=2)

    advance(session, envelope, alice, NextSigner(name="Dave", email="dave@mail.com"))

    session.refresh(bob)
    assert bob.email == "b@mail.com"
    assert EnvelopeRepository(session).find_audit_logs(envelope.id) == []


def test_paralelo_notifica_a_todos_los_no_enviados(session, make_envelope, make_recipient):
    envelope = make_envelope(signing_order=DocumentSigningOrder.PARALLEL)
    alice = make_recipient(envelope, "a@mail.com", signing_status=SigningStatus.SIGNED)
    bob = make_recipient(envelope, "b@mail.com")
    carol = make_recipient(envelope, "c@mail.com", send_status=SendStatus.SENT)
    make_recipient(envelope, "cc@mail.com", role=RecipientRole.CC)

    result = advance(session, envelope, alice)

    assert [r.id for r in result.recipients_to_notify] == [bob.id]
    assert {r.id for r in result.pending_recipients} == {bob.id, carol.id}
