from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import get_db
from app.schemas import attempt as attempt_schema
from app.services import attempt_service

router = APIRouter(prefix="/attempts", tags=["attempts"])


@router.post("", response_model=attempt_schema.AttemptResponse, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    request: attempt_schema.AttemptStartRequest,
    db: AsyncSession = Depends(get_db),
):
    """풀이 시작 API"""
    return await attempt_service.start_attempt(db, request)


@router.post("/{attempt_id}/answers", response_model=attempt_schema.AnswerSubmitResponse)
async def submit_answer(
    attempt_id: int,
    request: attempt_schema.AnswerSubmitRequest,
    db: AsyncSession = Depends(get_db),
):
    """답안 제출 API (재제출 시 덮어쓰기)"""
    return await attempt_service.submit_answer(db, attempt_id, request)


@router.post("/{attempt_id}/finish", response_model=attempt_schema.AttemptResponse)
async def finish_attempt(
    attempt_id: int,
    db: AsyncSession = Depends(get_db),
):
    """풀이 종료 API (점수 확정)"""
    return await attempt_service.finish_attempt(db, attempt_id)


@router.get("/{attempt_id}", response_model=attempt_schema.AttemptDetailResponse)
async def get_attempt(
    attempt_id: int,
    db: AsyncSession = Depends(get_db),
):
    """풀이 기록 조회 API"""
    return await attempt_service.get_attempt(db, attempt_id)
