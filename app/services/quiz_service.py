import logging
import secrets
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud import quiz as quiz_crud
from app.exceptions import (
    InputValidationError,
    NoStoredSource,
    QuizNotFoundError,
    QuizOwnershipError,
)
from app.schemas import ai, quiz as quiz_schema
from app.services.extraction_service import ensure_sufficient_text
from app.services.quiz_generation import QuizGenerationEngine
from app.services.quiz_spec_builder import CONTEXT_LABELS, QuizSpecBuilder
from app.utils.text import normalize_whitespace

logger = logging.getLogger(__name__)

SOURCE_TYPES = ("topic", "pdf", "images")
TEXT_SOURCE_TYPES = ("pdf", "images")

spec_builder = QuizSpecBuilder()


def normalize_user_id(user_id: str | None) -> str:
    """사용자 키 정규화 (비어 있으면 InputValidationError)"""
    value = (user_id or "").strip()
    if not value:
        raise InputValidationError("user_id는 필수입니다")
    if len(value) > 128:
        raise InputValidationError("user_id는 128자를 넘을 수 없습니다")
    return value


def render_topic_source(context: dict[str, str | None]) -> str:
    """주제 모드의 원본 텍스트 (메타데이터를 정규화된 문장으로 보존)"""
    lines = []
    for key, label in CONTEXT_LABELS.items():
        value = context.get(key)
        if value and value.strip():
            lines.append(f"{label}: {normalize_whitespace(value)}")
    return "\n".join(lines)


def _settings_snapshot(contract: ai.GenerationContract, allow_general_knowledge: bool) -> dict[str, Any]:
    """재생성에 필요한 생성 파라미터"""
    return {
        "language": contract.language,
        "difficulty": contract.difficulty,
        "question_count": contract.question_count,
        "choice_count": contract.choice_count,
        "question_type": contract.question_type,
        "strict_language": contract.strict_language,
        "allow_general_knowledge": allow_general_knowledge,
        "grounded": contract.grounded,
        "context": dict(contract.context),
        "variation_token": contract.variation_token,
    }


async def _generate_and_store(
    session: AsyncSession,
    engine: QuizGenerationEngine,
    user_id: str,
    source_type: str,
    generation_request: ai.GenerationRequest,
    source_meta: dict[str, Any],
    stored_source_text: str | None,
    variation_token: str | None = None,
    temperature: float | None = None,
) -> int:
    contract = spec_builder.build(generation_request, variation_token=variation_token, temperature=temperature)
    generated = await engine.generate(contract)

    quiz = await quiz_crud.create_quiz(
        session,
        user_id=user_id,
        generated=generated,
        difficulty=contract.difficulty,
        source_type=source_type,
        source_meta=source_meta,
        source_text=stored_source_text,
        settings=_settings_snapshot(contract, generation_request.allow_general_knowledge),
    )
    logger.info(
        f"퀴즈 생성 완료: quiz_id={quiz.id}, user_id={user_id}, source_type={source_type}, "
        f"questions={len(generated.questions)}, model_calls={generated.model_calls}"
    )
    return quiz.id


async def generate_from_topic(
    session: AsyncSession,
    engine: QuizGenerationEngine,
    request: quiz_schema.TopicQuizCreateRequest,
) -> quiz_schema.QuizCreatedResponse:
    """주제 기반 퀴즈 생성 (업로드 자료 없음, 일반 지식 허용)"""
    user_id = normalize_user_id(request.user_id)
    if not request.topic or not request.topic.strip():
        raise InputValidationError("topic은 필수입니다")

    context = request.context_metadata()
    generation_request = ai.GenerationRequest(
        language=request.language,
        difficulty=request.difficulty,
        question_count=request.question_count,
        choice_count=request.choice_count,
        context=context,
        source_text=None,
        allow_general_knowledge=True,
        strict_language=request.strict_language,
    )
    source_meta = {key: normalize_whitespace(value) for key, value in context.items() if value and value.strip()}

    quiz_id = await _generate_and_store(
        session,
        engine,
        user_id=user_id,
        source_type="topic",
        generation_request=generation_request,
        source_meta=source_meta,
        stored_source_text=render_topic_source(context),
    )
    return quiz_schema.QuizCreatedResponse(quiz_id=quiz_id)


async def generate_from_text(
    session: AsyncSession,
    engine: QuizGenerationEngine,
    user_id: str | None,
    source_type: str,
    extracted_text: str | None,
    request: quiz_schema.TextQuizCreateRequest,
    source_meta: dict[str, Any] | None = None,
) -> quiz_schema.QuizCreatedResponse:
    """업로드 자료(PDF/이미지)에서 추출한 텍스트 기반 퀴즈 생성 (자료 내용만 사용)"""
    user_id = normalize_user_id(user_id)
    if source_type not in TEXT_SOURCE_TYPES:
        raise InputValidationError(f"지원하지 않는 source_type입니다: {source_type}")
    source_text = ensure_sufficient_text(extracted_text)

    context = request.context_metadata()
    meta = dict(source_meta or {})
    meta["text_chars"] = len(source_text)
    generation_request = ai.GenerationRequest(
        language=request.language,
        difficulty=request.difficulty,
        question_count=request.question_count,
        choice_count=request.choice_count,
        context=context,
        source_text=source_text,
        allow_general_knowledge=False,
        strict_language=request.strict_language,
        title_hint=meta.get("filename"),
    )

    if not request.store_source:
        logger.info(f"원본 텍스트 미보관 요청: user_id={user_id}, source_type={source_type} (재생성 불가)")

    quiz_id = await _generate_and_store(
        session,
        engine,
        user_id=user_id,
        source_type=source_type,
        generation_request=generation_request,
        source_meta=meta,
        stored_source_text=source_text if request.store_source else None,
    )
    return quiz_schema.QuizCreatedResponse(quiz_id=quiz_id)


async def regenerate(
    session: AsyncSession,
    engine: QuizGenerationEngine,
    quiz_id: int,
    user_id: str | None,
) -> quiz_schema.QuizCreatedResponse:
    """같은 자료로 새로운 변형 퀴즈 생성 (기존 퀴즈는 변경하지 않음)"""
    user_id = normalize_user_id(user_id)
    original = await quiz_crud.get_quiz_by_id(session, quiz_id)
    if not original:
        raise QuizNotFoundError(quiz_id)

    stored = dict(original.settings or {})
    context = dict(stored.get("context") or {})

    if original.source_type == "topic":
        # 주제 모드는 메타데이터로 요청을 재구성
        if not context.get("topic"):
            context["topic"] = original.source_text or original.title
        source_text = None
        allow_general_knowledge = True
    else:
        if not original.source_text:
            raise NoStoredSource(quiz_id)
        source_text = original.source_text
        allow_general_knowledge = bool(stored.get("allow_general_knowledge", False))

    generation_request = ai.GenerationRequest(
        language=stored.get("language") or original.language,
        difficulty=stored.get("difficulty") or original.difficulty,
        question_count=stored.get("question_count"),
        choice_count=stored.get("choice_count"),
        question_type=stored.get("question_type") or "mcq",
        context=context,
        source_text=source_text,
        allow_general_knowledge=allow_general_knowledge,
        strict_language=bool(stored.get("strict_language", True)),
        title_hint=original.title,
    )
    source_meta = dict(original.source_meta or {})
    source_meta["regenerated_from"] = original.id

    variation_token = secrets.token_hex(8)
    logger.info(f"퀴즈 재생성 요청: quiz_id={quiz_id}, user_id={user_id}, variation={variation_token}")

    new_quiz_id = await _generate_and_store(
        session,
        engine,
        user_id=user_id,
        source_type=original.source_type,
        generation_request=generation_request,
        source_meta=source_meta,
        stored_source_text=original.source_text,
        variation_token=variation_token,
        temperature=settings.regeneration_temperature,
    )
    return quiz_schema.QuizCreatedResponse(quiz_id=new_quiz_id)


async def get_quiz(session: AsyncSession, quiz_id: int) -> quiz_schema.QuizResponse:
    """퀴즈 + 문항(idx 순) 조회"""
    quiz, questions = await quiz_crud.get_quiz_with_questions(session, quiz_id)
    return quiz_schema.QuizResponse(
        id=quiz.id,
        user_id=quiz.user_id,
        title=quiz.title,
        language=quiz.language,
        difficulty=quiz.difficulty,
        source_type=quiz.source_type,
        source_meta=quiz.source_meta or {},
        settings=quiz.settings or {},
        has_source_text=quiz.source_text is not None,
        created_at=quiz.created_at,
        questions=[quiz_schema.QuestionResponse.model_validate(q) for q in questions],
    )


async def list_quizzes(session: AsyncSession, user_id: str | None) -> quiz_schema.QuizListResponse:
    """사용자 퀴즈 목록 (최신순, 문항 본문 제외)"""
    user_id = normalize_user_id(user_id)
    rows = await quiz_crud.list_quizzes_by_user(session, user_id)
    summaries = [
        quiz_schema.QuizSummaryResponse(
            id=quiz.id,
            title=quiz.title,
            language=quiz.language,
            difficulty=quiz.difficulty,
            source_type=quiz.source_type,
            question_count=question_count,
            created_at=quiz.created_at,
        )
        for quiz, question_count in rows
    ]
    return quiz_schema.QuizListResponse(quizzes=summaries, total=len(summaries))


async def delete_quiz(session: AsyncSession, quiz_id: int, user_id: str | None) -> None:
    """퀴즈 삭제 (소유자만 가능)"""
    user_id = normalize_user_id(user_id)
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id)
    if not quiz:
        raise QuizNotFoundError(quiz_id)
    if quiz.user_id != user_id:
        raise QuizOwnershipError(quiz_id)
    await quiz_crud.delete_quiz(session, quiz)
