from datetime import datetime

from pydantic import BaseModel, Field


class AttemptStartRequest(BaseModel):
    """풀이 시작 요청 스키마"""
    quiz_id: int = Field(..., description="퀴즈 ID")
    user_id: str | None = Field(None, description="사용자 키")


class AnswerSubmitRequest(BaseModel):
    """답안 제출 요청 스키마"""
    question_id: int = Field(..., description="문항 ID")
    user_answer: str = Field(..., description="사용자가 고른 선택지 텍스트")


class AnswerSubmitResponse(BaseModel):
    """답안 제출 응답 스키마"""
    attempt_id: int
    question_id: int
    is_correct: bool


class AttemptAnswerResponse(BaseModel):
    """답안 기록 응답 스키마"""
    question_id: int
    user_answer: str
    is_correct: bool

    model_config = {"from_attributes": True}


class AttemptResponse(BaseModel):
    """풀이 기록 응답 스키마"""
    id: int
    quiz_id: int
    user_id: str
    total: int
    score: int
    started_at: datetime
    finished_at: datetime | None

    model_config = {"from_attributes": True}


class AttemptDetailResponse(AttemptResponse):
    """풀이 기록 + 답안 목록"""
    answers: list[AttemptAnswerResponse]
