from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class QuizGenerationOptions(BaseModel):
    """생성 공통 옵션 (언어/난이도/문항 수/선택지 수)

    user_id, topic 등 필수 값의 검증은 서비스 계층에서 InputValidationError로 처리
    """
    user_id: str | None = Field(None, description="사용자 키 (검증되지 않은 상관관계 키)")
    language: str | None = Field(None, description="언어 코드 (예: 'ro', 'en')")
    difficulty: str | None = Field(None, description="난이도 (easy/medium/hard, usor/mediu/greu 허용)")
    question_count: int | None = Field(None, description="문항 수 (범위 밖이면 보정)")
    choice_count: Literal[3, 4] | None = Field(None, description="선택지 수 (3 또는 4)")
    strict_language: bool = Field(True, description="다른 언어 출력 거부 여부")
    subject: str | None = Field(None, description="과목")
    level: str | None = Field(None, description="수준 (예: 고등학교, 대학교)")
    institution: str | None = Field(None, description="기관")
    profile: str | None = Field(None, description="전공/계열")
    grade: str | None = Field(None, description="학년")
    notes: str | None = Field(None, description="추가 요청 사항")
    topic: str | None = Field(None, description="주제")

    def context_metadata(self) -> dict[str, str | None]:
        """프롬프트용 컨텍스트 필드"""
        return {
            "topic": self.topic,
            "subject": self.subject,
            "level": self.level,
            "institution": self.institution,
            "profile": self.profile,
            "grade": self.grade,
            "notes": self.notes,
        }


class TopicQuizCreateRequest(QuizGenerationOptions):
    """주제 기반 퀴즈 생성 요청 스키마 (topic 필수)"""


class TextQuizCreateRequest(QuizGenerationOptions):
    """업로드 자료(PDF/이미지) 기반 퀴즈 생성 옵션"""
    store_source: bool = Field(True, description="재생성을 위한 추출 텍스트 저장 여부")


class RegenerateRequest(BaseModel):
    """퀴즈 재생성 요청 스키마"""
    user_id: str | None = Field(None, description="사용자 키")


class QuizCreatedResponse(BaseModel):
    """퀴즈 생성 응답 스키마"""
    quiz_id: int


class QuestionResponse(BaseModel):
    """문항 응답 스키마"""
    id: int
    idx: int
    type: str
    question: str
    choices: list[str]
    answer: str
    explanation: str

    model_config = {"from_attributes": True}


class QuizResponse(BaseModel):
    """퀴즈 상세 응답 스키마 (문항은 idx 오름차순)"""
    id: int
    user_id: str
    title: str
    language: str
    difficulty: str
    source_type: str
    source_meta: dict[str, Any]
    settings: dict[str, Any]
    has_source_text: bool
    created_at: datetime
    questions: list[QuestionResponse]


class QuizSummaryResponse(BaseModel):
    """퀴즈 목록용 요약 스키마 (문항 본문 제외)"""
    id: int
    title: str
    language: str
    difficulty: str
    source_type: str
    question_count: int
    created_at: datetime


class QuizListResponse(BaseModel):
    """퀴즈 목록 응답 스키마"""
    quizzes: list[QuizSummaryResponse]
    total: int
