"""풀이 세션 관리: 시작 -> 답안 제출(반복, 문항별 덮어쓰기) -> 종료(점수 재집계)"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import attempt as attempt_crud, quiz as quiz_crud
from app.exceptions import (
    AttemptNotFoundError,
    InputValidationError,
    QuestionNotFoundError,
    QuizNotFoundError,
)
from app.schemas import attempt as attempt_schema
from app.services.quiz_service import normalize_user_id

logger = logging.getLogger(__name__)


def is_correct_answer(user_answer: str, canonical_answer: str) -> bool:
    """정답 판정 (앞뒤 공백 제거 후 정확히 일치)"""
    return user_answer.strip() == canonical_answer.strip()


async def start_attempt(
    session: AsyncSession,
    request: attempt_schema.AttemptStartRequest,
) -> attempt_schema.AttemptResponse:
    """풀이 시작 (total은 시작 시점의 문항 수로 고정)"""
    user_id = normalize_user_id(request.user_id)
    quiz = await quiz_crud.get_quiz_by_id(session, request.quiz_id)
    if not quiz:
        raise QuizNotFoundError(request.quiz_id)

    total = await quiz_crud.get_question_count(session, request.quiz_id)
    attempt = await attempt_crud.create_attempt(
        session,
        quiz_id=request.quiz_id,
        user_id=user_id,
        total=total,
    )
    logger.info(f"풀이 시작: attempt_id={attempt.id}, quiz_id={request.quiz_id}, total={total}")
    return attempt_schema.AttemptResponse.model_validate(attempt)


async def submit_answer(
    session: AsyncSession,
    attempt_id: int,
    request: attempt_schema.AnswerSubmitRequest,
) -> attempt_schema.AnswerSubmitResponse:
    """답안 제출 (같은 문항 재제출 시 마지막 값으로 덮어쓰기)

    종료된 풀이에도 제출은 허용되며, 점수는 finish_attempt를 다시 호출할 때만 재계산된다.
    """
    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id)
    if not attempt:
        raise AttemptNotFoundError(attempt_id)

    question = await quiz_crud.get_question_by_id(session, request.question_id)
    if not question:
        raise QuestionNotFoundError(request.question_id)
    if question.quiz_id != attempt.quiz_id:
        raise InputValidationError(
            f"문항이 해당 풀이의 퀴즈에 속하지 않습니다: question_id={request.question_id}, "
            f"attempt_id={attempt_id}"
        )

    user_answer = request.user_answer.strip()
    is_correct = is_correct_answer(user_answer, question.answer)
    await attempt_crud.upsert_answer(
        session,
        attempt_id=attempt_id,
        question_id=request.question_id,
        user_answer=user_answer,
        is_correct=is_correct,
    )
    logger.debug(
        f"답안 제출: attempt_id={attempt_id}, question_id={request.question_id}, is_correct={is_correct}"
    )
    return attempt_schema.AnswerSubmitResponse(
        attempt_id=attempt_id,
        question_id=request.question_id,
        is_correct=is_correct,
    )


async def finish_attempt(session: AsyncSession, attempt_id: int) -> attempt_schema.AttemptResponse:
    """풀이 종료: 정답 수를 DB에서 다시 집계해 점수 확정 (재호출해도 같은 결과)"""
    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id)
    if not attempt:
        raise AttemptNotFoundError(attempt_id)

    score = await attempt_crud.count_correct_answers(session, attempt_id)
    attempt = await attempt_crud.finish_attempt(session, attempt, score)
    logger.info(f"풀이 종료: attempt_id={attempt_id}, score={score}/{attempt.total}")
    return attempt_schema.AttemptResponse.model_validate(attempt)


async def get_attempt(session: AsyncSession, attempt_id: int) -> attempt_schema.AttemptDetailResponse:
    """풀이 기록 + 답안 조회"""
    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id)
    if not attempt:
        raise AttemptNotFoundError(attempt_id)

    answers = await attempt_crud.get_answers_by_attempt(session, attempt_id)
    return attempt_schema.AttemptDetailResponse(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        user_id=attempt.user_id,
        total=attempt.total,
        score=attempt.score,
        started_at=attempt.started_at,
        finished_at=attempt.finished_at,
        answers=[attempt_schema.AttemptAnswerResponse.model_validate(a) for a in answers],
    )
