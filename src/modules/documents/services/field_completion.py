from typing import Iterable

from modules.documents.models.field import Field, FieldType

# Advanced fields are optional unless their meta says otherwise
ADVANCED_FIELD_TYPES = (
    FieldType.TEXT,
    FieldType.NUMBER,
    FieldType.RADIO,
    FieldType.CHECKBOX,
    FieldType.DROPDOWN,
)


def is_required_field(field: Field) -> bool:
    if field.type not in ADVANCED_FIELD_TYPES:
        return True

    meta = field.field_meta or {}
    if meta.get("read_only"):
        return False
    return bool(meta.get("required"))


def has_unsigned_required_field(fields: Iterable[Field]) -> bool:
    """True iff some field in the set is required and not inserted yet."""
    return any(is_required_field(field) and not field.inserted for field in fields)
