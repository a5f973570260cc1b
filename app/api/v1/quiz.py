import asyncio

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_generation_engine
from app.exceptions import InputValidationError
from app.models.base import get_db
from app.schemas import quiz as quiz_schema
from app.services import extraction_service, quiz_service
from app.services.quiz_generation import QuizGenerationEngine

router = APIRouter(prefix="/quiz", tags=["quiz"])


def text_quiz_form(
    user_id: str | None = Form(None),
    language: str | None = Form(None),
    difficulty: str | None = Form(None),
    question_count: int | None = Form(None),
    choice_count: int | None = Form(None),
    strict_language: bool = Form(True),
    store_source: bool = Form(True),
    topic: str | None = Form(None),
    subject: str | None = Form(None),
    level: str | None = Form(None),
    institution: str | None = Form(None),
    profile: str | None = Form(None),
    grade: str | None = Form(None),
    notes: str | None = Form(None),
) -> quiz_schema.TextQuizCreateRequest:
    """multipart 폼 필드 -> TextQuizCreateRequest"""
    try:
        return quiz_schema.TextQuizCreateRequest(
            user_id=user_id,
            language=language,
            difficulty=difficulty,
            question_count=question_count,
            choice_count=choice_count,
            strict_language=strict_language,
            store_source=store_source,
            topic=topic,
            subject=subject,
            level=level,
            institution=institution,
            profile=profile,
            grade=grade,
            notes=notes,
        )
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InputValidationError(f"잘못된 요청 필드입니다: {fields}")


@router.post("/topic", response_model=quiz_schema.QuizCreatedResponse, status_code=status.HTTP_201_CREATED)
async def generate_topic_quiz(
    request: quiz_schema.TopicQuizCreateRequest,
    db: AsyncSession = Depends(get_db),
    engine: QuizGenerationEngine = Depends(get_generation_engine),
):
    """주제 기반 퀴즈 생성 API"""
    return await quiz_service.generate_from_topic(db, engine, request)


@router.post("/pdf", response_model=quiz_schema.QuizCreatedResponse, status_code=status.HTTP_201_CREATED)
async def generate_pdf_quiz(
    file: UploadFile = File(...),
    request: quiz_schema.TextQuizCreateRequest = Depends(text_quiz_form),
    db: AsyncSession = Depends(get_db),
    engine: QuizGenerationEngine = Depends(get_generation_engine),
):
    """PDF 업로드 기반 퀴즈 생성 API"""
    quiz_service.normalize_user_id(request.user_id)
    data = await file.read()
    extraction_service.validate_pdf_upload(file.filename, file.content_type, len(data))
    # pypdf 파싱은 동기 작업이므로 executor에서 실행
    loop = asyncio.get_running_loop()
    extracted_text = await loop.run_in_executor(None, extraction_service.extract_pdf_text, data)

    return await quiz_service.generate_from_text(
        db,
        engine,
        user_id=request.user_id,
        source_type="pdf",
        extracted_text=extracted_text,
        request=request,
        source_meta={"filename": file.filename, "size": len(data)},
    )


@router.post("/images", response_model=quiz_schema.QuizCreatedResponse, status_code=status.HTTP_201_CREATED)
async def generate_images_quiz(
    files: list[UploadFile] = File(...),
    request: quiz_schema.TextQuizCreateRequest = Depends(text_quiz_form),
    db: AsyncSession = Depends(get_db),
    engine: QuizGenerationEngine = Depends(get_generation_engine),
):
    """사진 촬영 페이지 기반 퀴즈 생성 API"""
    quiz_service.normalize_user_id(request.user_id)
    extraction_service.ensure_image_count(len(files))
    images = [(await f.read(), f.content_type) for f in files]
    extraction_service.validate_image_uploads(
        [(f.filename, f.content_type, len(data)) for f, (data, _) in zip(files, images)]
    )
    extracted_text = await extraction_service.extract_images_text(engine.model_caller, images)

    return await quiz_service.generate_from_text(
        db,
        engine,
        user_id=request.user_id,
        source_type="images",
        extracted_text=extracted_text,
        request=request,
        source_meta={
            "image_count": len(images),
            "filenames": [f.filename for f in files],
            "size": sum(len(data) for data, _ in images),
        },
    )


@router.post(
    "/{quiz_id}/regenerate",
    response_model=quiz_schema.QuizCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def regenerate_quiz(
    quiz_id: int,
    request: quiz_schema.RegenerateRequest,
    db: AsyncSession = Depends(get_db),
    engine: QuizGenerationEngine = Depends(get_generation_engine),
):
    """같은 자료로 새 퀴즈 재생성 API"""
    return await quiz_service.regenerate(db, engine, quiz_id, request.user_id)


@router.get("", response_model=quiz_schema.QuizListResponse)
async def list_quizzes(
    user_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """사용자 퀴즈 목록 API (최신순)"""
    return await quiz_service.list_quizzes(db, user_id)


@router.get("/{quiz_id}", response_model=quiz_schema.QuizResponse)
async def get_quiz(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 조회 API (문항 idx 순)"""
    return await quiz_service.get_quiz(db, quiz_id)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: int,
    user_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 삭제 API (소유자만)"""
    await quiz_service.delete_quiz(db, quiz_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
