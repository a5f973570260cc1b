import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from app.core.config import settings
from app.exceptions import InputValidationError
from app.utils.text import normalize_whitespace

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}


def extract_pdf_text(data: bytes) -> str:
    """PDF 본문 텍스트 추출 (페이지 순서 유지)"""
    if not data:
        raise InputValidationError("빈 PDF 파일입니다")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                pages.append(page_text.strip())
    except (PdfReadError, ValueError) as e:
        logger.warning(f"PDF 파싱 실패: {e.__class__.__name__}: {str(e)[:200]}")
        raise InputValidationError("PDF 파일을 읽을 수 없습니다")

    logger.debug(f"PDF 텍스트 추출: pages={len(reader.pages)}, text_pages={len(pages)}")
    return "\n".join(pages)


async def extract_images_text(model_caller, images: list[tuple[bytes, str]]) -> str:
    """사진 촬영된 페이지 텍스트 추출 (Gemini 비전 모델)"""
    if not images:
        raise InputValidationError("이미지가 없습니다")
    return await model_caller.transcribe_images(images)


def ensure_sufficient_text(text: str | None) -> str:
    """추출 텍스트 정규화 + 최소 길이 확인"""
    normalized = normalize_whitespace(text or "")
    if len(normalized) < settings.min_extracted_text_chars:
        raise InputValidationError(
            f"추출된 텍스트가 너무 짧습니다 ({len(normalized)}자). "
            f"최소 {settings.min_extracted_text_chars}자 이상의 자료가 필요합니다"
        )
    return normalized


def validate_pdf_upload(filename: str | None, content_type: str | None, size: int) -> None:
    """PDF 업로드 검증 (형식/크기)"""
    name = (filename or "").lower()
    if content_type not in PDF_CONTENT_TYPES and not name.endswith(".pdf"):
        raise InputValidationError(f"지원하지 않는 파일 형식입니다: {content_type or filename}")
    if size == 0:
        raise InputValidationError("빈 PDF 파일입니다")
    if size > settings.max_pdf_bytes:
        raise InputValidationError(
            f"PDF 파일이 너무 큽니다 (최대 {settings.max_pdf_bytes // (1024 * 1024)}MB)"
        )


def ensure_image_count(count: int) -> None:
    """이미지 개수 확인 (업로드 내용을 읽기 전에 호출)"""
    if count == 0:
        raise InputValidationError("이미지가 없습니다")
    if count > settings.max_images:
        raise InputValidationError(f"이미지는 최대 {settings.max_images}장까지 업로드할 수 있습니다")


def validate_image_uploads(files: list[tuple[str | None, str | None, int]]) -> None:
    """이미지 업로드 검증 (개수/형식/크기)"""
    ensure_image_count(len(files))
    for filename, content_type, size in files:
        if content_type not in IMAGE_CONTENT_TYPES:
            raise InputValidationError(f"지원하지 않는 이미지 형식입니다: {content_type or filename}")
        if size == 0:
            raise InputValidationError(f"빈 이미지 파일입니다: {filename}")
        if size > settings.max_image_bytes:
            raise InputValidationError(
                f"이미지 파일이 너무 큽니다: {filename} (최대 {settings.max_image_bytes // (1024 * 1024)}MB)"
            )
