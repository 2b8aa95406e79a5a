import pytest

from helpers import make_pdf_bytes
from modules.documents.exceptions import ValidationError
from modules.documents.services.pdf_service import inject_form_values, page_count


def test_cuenta_paginas():
    assert page_count(make_pdf_bytes(pages=3)) == 3


def test_pdf_invalido():
    with pytest.raises(ValidationError):
        page_count(b"esto no es un pdf")


def test_inyectar_sin_valores_devuelve_mismo_contenido():
    data = make_pdf_bytes()
    assert inject_form_values(data, {}) is data


def test_inyectar_sin_formulario_devuelve_mismo_contenido():
    data = make_pdf_bytes()
    assert inject_form_values(data, {"nombre": "Ana"}) is data
