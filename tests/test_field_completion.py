import pytest

from modules.documents.models import Field, FieldType
from modules.documents.services.field_completion import (
    has_unsigned_required_field, is_required_field,
)


def field(type, inserted=False, field_meta=None):
    return Field(type=type, inserted=inserted, field_meta=field_meta)


@pytest.mark.parametrize("type", [
    FieldType.SIGNATURE, FieldType.FREE_SIGNATURE, FieldType.INITIALS,
    FieldType.NAME, FieldType.EMAIL, FieldType.DATE,
])
def test_campos_basicos_siempre_requeridos(type):
    assert is_required_field(field(type)) is True
    assert is_required_field(field(type, field_meta={"required": False})) is True


@pytest.mark.parametrize("type", [
    FieldType.TEXT, FieldType.NUMBER, FieldType.RADIO, FieldType.CHECKBOX, FieldType.DROPDOWN,
])
def test_campos_avanzados_requeridos_solo_por_meta(type):
    assert is_required_field(field(type)) is False
    assert is_required_field(field(type, field_meta={"required": True})) is True
    assert is_required_field(field(type, field_meta={"required": True, "read_only": True})) is False


def test_conjunto_vacio_no_tiene_pendientes():
    assert has_unsigned_required_field([]) is False


def test_firma_sin_insertar_es_pendiente():
    assert has_unsigned_required_field([field(FieldType.SIGNATURE)]) is True
    assert has_unsigned_required_field([field(FieldType.SIGNATURE, inserted=True)]) is False


def test_texto_opcional_no_bloquea():
    fields = [field(FieldType.SIGNATURE, inserted=True), field(FieldType.TEXT)]
    assert has_unsigned_required_field(fields) is False


def test_texto_requerido_bloquea():
    fields = [field(FieldType.SIGNATURE, inserted=True), field(FieldType.TEXT, field_meta={"required": True})]
    assert has_unsigned_required_field(fields) is True
