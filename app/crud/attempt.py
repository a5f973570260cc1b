import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attempt import Attempt, AttemptAnswer

logger = logging.getLogger(__name__)


async def create_attempt(
    session: AsyncSession,
    quiz_id: int,
    user_id: str,
    total: int,
) -> Attempt:
    """풀이 기록 생성 (score=0, finished_at=None)"""
    attempt = Attempt(quiz_id=quiz_id, user_id=user_id, total=total, score=0)
    session.add(attempt)
    await session.commit()
    await session.refresh(attempt)
    return attempt


async def get_attempt_by_id(session: AsyncSession, attempt_id: int) -> Attempt | None:
    """ID로 풀이 기록 조회"""
    result = await session.execute(select(Attempt).where(Attempt.id == attempt_id))
    return result.scalar_one_or_none()


async def get_answer(
    session: AsyncSession,
    attempt_id: int,
    question_id: int,
) -> AttemptAnswer | None:
    """풀이 기록 ID와 문항 ID로 답안 조회"""
    stmt = select(AttemptAnswer).where(
        AttemptAnswer.attempt_id == attempt_id,
        AttemptAnswer.question_id == question_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_answers_by_attempt(session: AsyncSession, attempt_id: int) -> Sequence[AttemptAnswer]:
    """풀이 기록의 답안 목록"""
    result = await session.execute(
        select(AttemptAnswer)
        .where(AttemptAnswer.attempt_id == attempt_id)
        .order_by(AttemptAnswer.question_id)
    )
    return result.scalars().all()


async def upsert_answer(
    session: AsyncSession,
    attempt_id: int,
    question_id: int,
    user_answer: str,
    is_correct: bool,
) -> AttemptAnswer:
    """답안 저장 (같은 문항 재제출 시 덮어쓰기, 항상 1행 유지)

    동시 제출로 유니크 제약 충돌이 나면 롤백 후 기존 행을 갱신한다.
    """
    record = await get_answer(session, attempt_id, question_id)
    if record is None:
        record = AttemptAnswer(
            attempt_id=attempt_id,
            question_id=question_id,
            user_answer=user_answer,
            is_correct=is_correct,
        )
        session.add(record)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info(
                f"동시 답안 제출 감지, 기존 행 갱신: attempt_id={attempt_id}, question_id={question_id}"
            )
            record = await get_answer(session, attempt_id, question_id)
            if record is None:
                raise
            record.user_answer = user_answer
            record.is_correct = is_correct
            await session.commit()
    else:
        record.user_answer = user_answer
        record.is_correct = is_correct
        await session.commit()

    await session.refresh(record)
    return record


async def count_correct_answers(session: AsyncSession, attempt_id: int) -> int:
    """정답 개수 집계 (항상 DB에서 새로 계산)"""
    count = await session.scalar(
        select(func.count(AttemptAnswer.id)).where(
            AttemptAnswer.attempt_id == attempt_id,
            AttemptAnswer.is_correct.is_(True),
        )
    )
    return count or 0


async def finish_attempt(session: AsyncSession, attempt: Attempt, score: int) -> Attempt:
    """점수 확정 및 종료 시각 기록"""
    attempt.score = score
    attempt.finished_at = datetime.now(timezone.utc)
    await session.commit()
    await session.refresh(attempt)
    return attempt
