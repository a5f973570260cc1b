"""자료 추출/업로드 검증 테스트"""
import io

import pytest
from pypdf import PdfWriter

from app.core.config import settings
from app.exceptions import InputValidationError
from app.services import extraction_service


def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_extract_pdf_text_blank_page():
    """텍스트 없는 PDF는 빈 문자열 (길이 검사는 서비스에서)"""
    assert extraction_service.extract_pdf_text(blank_pdf()) == ""


@pytest.mark.parametrize("data", [b"", b"this is not a pdf"])
def test_extract_pdf_text_invalid(data):
    with pytest.raises(InputValidationError):
        extraction_service.extract_pdf_text(data)


def test_ensure_sufficient_text():
    text = "Celula  este unitatea\nde bază a vieții și are membrană, citoplasmă și nucleu."
    assert extraction_service.ensure_sufficient_text(text) == (
        "Celula este unitatea de bază a vieții și are membrană, citoplasmă și nucleu."
    )
    with pytest.raises(InputValidationError):
        extraction_service.ensure_sufficient_text("scurt")
    with pytest.raises(InputValidationError):
        extraction_service.ensure_sufficient_text(None)


def test_validate_pdf_upload():
    extraction_service.validate_pdf_upload("curs.pdf", "application/pdf", 10)
    # 일부 브라우저는 content-type을 비워 보냄
    extraction_service.validate_pdf_upload("curs.PDF", None, 10)
    with pytest.raises(InputValidationError):
        extraction_service.validate_pdf_upload("poza.jpg", "image/jpeg", 10)
    with pytest.raises(InputValidationError):
        extraction_service.validate_pdf_upload("curs.pdf", "application/pdf", 0)
    with pytest.raises(InputValidationError):
        extraction_service.validate_pdf_upload("curs.pdf", "application/pdf", settings.max_pdf_bytes + 1)


def test_validate_image_uploads():
    extraction_service.validate_image_uploads([("p1.jpg", "image/jpeg", 10), ("p2.png", "image/png", 10)])
    with pytest.raises(InputValidationError):
        extraction_service.validate_image_uploads([])
    with pytest.raises(InputValidationError):
        extraction_service.validate_image_uploads([("doc.pdf", "application/pdf", 10)])
    with pytest.raises(InputValidationError):
        extraction_service.validate_image_uploads([("p.jpg", "image/jpeg", 10)] * (settings.max_images + 1))


@pytest.mark.asyncio
async def test_extract_images_text_uses_model(fake_model):
    fake_model.transcription = "Pagina 1"

    result = await extraction_service.extract_images_text(fake_model, [(b"img", "image/jpeg")])

    assert result == "Pagina 1"
    assert fake_model.image_calls == [[(b"img", "image/jpeg")]]
