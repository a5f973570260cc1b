import logging
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PersistencePartialFailure, QuizNotFoundError
from app.models.question import Question
from app.models.quiz import Quiz
from app.schemas.ai import GeneratedQuiz

logger = logging.getLogger(__name__)


async def create_quiz(
    session: AsyncSession,
    user_id: str,
    generated: GeneratedQuiz,
    difficulty: str,
    source_type: str,
    source_meta: dict[str, Any],
    source_text: str | None,
    settings: dict[str, Any],
) -> Quiz:
    """퀴즈 + 문항을 하나의 트랜잭션으로 저장

    문항 idx는 배열 순서로 부여한다 (0..n-1).
    문항 저장 실패 시 롤백하며, 롤백마저 실패하면 퀴즈 행만 남았을 수 있으므로
    보상 삭제를 시도하고 PersistencePartialFailure로 보고한다.
    """
    quiz = Quiz(
        user_id=user_id,
        title=generated.title,
        language=generated.language,
        difficulty=difficulty,
        source_type=source_type,
        source_meta=source_meta,
        source_text=source_text,
        settings=settings,
    )
    session.add(quiz)
    try:
        await session.flush()
    except SQLAlchemyError:
        logger.error(f"퀴즈 저장 실패: user_id={user_id}, source_type={source_type}", exc_info=True)
        await session.rollback()
        raise

    quiz_id = quiz.id
    try:
        session.add_all(
            Question(
                quiz_id=quiz_id,
                idx=idx,
                type=item.type,
                question=item.question,
                choices=item.choices,
                answer=item.answer,
                explanation=item.explanation,
            )
            for idx, item in enumerate(generated.questions)
        )
        await session.flush()
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"문항 저장 실패, 롤백: quiz_id={quiz_id}, error={e.__class__.__name__}", exc_info=True)
        try:
            await session.rollback()
        except SQLAlchemyError:
            logger.error(f"롤백 실패, 보상 삭제 시도: quiz_id={quiz_id}", exc_info=True)
            await _compensate_orphan_quiz(session, quiz_id)
            raise PersistencePartialFailure(
                f"문항 저장 중 오류가 발생했고 롤백에 실패했습니다. 보상 삭제를 시도했습니다: quiz_id={quiz_id}",
                quiz_id=quiz_id,
            ) from e
        raise

    await session.refresh(quiz)
    logger.info(f"퀴즈 저장 완료: quiz_id={quiz_id}, questions={len(generated.questions)}")
    return quiz


async def _compensate_orphan_quiz(session: AsyncSession, quiz_id: int) -> None:
    """문항 없이 남은 퀴즈 행 삭제 (실패해도 PersistencePartialFailure로 보고됨)"""
    try:
        await session.execute(delete(Question).where(Question.quiz_id == quiz_id))
        await session.execute(delete(Quiz).where(Quiz.id == quiz_id))
        await session.commit()
        logger.warning(f"보상 삭제 완료: quiz_id={quiz_id}")
    except SQLAlchemyError:
        logger.error(f"보상 삭제 실패, 수동 확인 필요: quiz_id={quiz_id}", exc_info=True)


async def get_quiz_by_id(session: AsyncSession, quiz_id: int) -> Quiz | None:
    """ID로 퀴즈 조회 (문항 제외)"""
    result = await session.execute(select(Quiz).where(Quiz.id == quiz_id))
    return result.scalar_one_or_none()


async def get_quiz_with_questions(session: AsyncSession, quiz_id: int) -> tuple[Quiz, Sequence[Question]]:
    """퀴즈 + 문항(idx 오름차순) 조회, 없으면 QuizNotFoundError"""
    quiz = await get_quiz_by_id(session, quiz_id)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    result = await session.execute(
        select(Question).where(Question.quiz_id == quiz_id).order_by(Question.idx)
    )
    return quiz, result.scalars().all()


async def get_question_by_id(session: AsyncSession, question_id: int) -> Question | None:
    """ID로 문항 조회"""
    result = await session.execute(select(Question).where(Question.id == question_id))
    return result.scalar_one_or_none()


async def get_question_count(session: AsyncSession, quiz_id: int) -> int:
    """퀴즈의 문항 개수"""
    count = await session.scalar(select(func.count(Question.id)).where(Question.quiz_id == quiz_id))
    return count or 0


async def list_quizzes_by_user(session: AsyncSession, user_id: str) -> list[tuple[Quiz, int]]:
    """사용자 퀴즈 목록 (생성일 내림차순) + 문항 개수

    문항 본문은 불러오지 않음. 문항이 없는 퀴즈는 목록에서 제외
    """
    question_count = (
        select(Question.quiz_id, func.count(Question.id).label("question_count"))
        .group_by(Question.quiz_id)
        .subquery()
    )
    stmt = (
        select(Quiz, question_count.c.question_count)
        .join(question_count, question_count.c.quiz_id == Quiz.id)
        .where(Quiz.user_id == user_id)
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    )
    result = await session.execute(stmt)
    return [(quiz, count) for quiz, count in result.all()]


async def delete_quiz(session: AsyncSession, quiz: Quiz) -> None:
    """퀴즈 삭제 (문항/풀이 기록은 FK cascade로 함께 삭제)"""
    quiz_id = quiz.id
    await session.delete(quiz)
    await session.commit()
    logger.info(f"퀴즈 삭제 완료: quiz_id={quiz_id}")
