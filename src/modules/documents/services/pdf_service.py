import io
from typing import Any, Dict, Optional

from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError

from modules.documents.exceptions import ValidationError
from logger import get_logger

logger = get_logger(__name__)


def _reader(data: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(data))
        _ = reader.pages
    except (PdfReadError, ValueError, OSError) as e:
        raise ValidationError("PDF inválido o dañado", {"error": str(e)})
    return reader


def page_count(data: bytes) -> int:
    return len(_reader(data).pages)


def inject_form_values(data: bytes, values: Optional[Dict[str, Any]]) -> bytes:
    """
    Write the given values into the PDF's form fields.

    Returns the input unchanged when there is nothing to inject or the PDF
    has no form.
    """
    if not values:
        return data

    reader = _reader(data)
    if not reader.get_fields():
        logger.info("PDF has no form fields, skipping form values")
        return data

    writer = PdfWriter()
    writer.clone_reader_document_root(reader)

    str_values = {name: str(value) for name, value in values.items()}
    for page in writer.pages:
        if "/Annots" in page:
            writer.update_page_form_field_values(page, str_values)

    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()
