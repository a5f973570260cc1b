from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AIQuizQuestion(BaseModel):
    """AI 생성 문항 스키마 (파싱용, 모델이 추가한 idx/position 등은 무시)"""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    type: str = Field("mcq", description="문항 유형")
    question: str = Field(..., min_length=1, description="문항 내용")
    choices: list[str] = Field(..., min_length=1, description="선택지")
    answer: str = Field(..., min_length=1, description="정답 (선택지 중 하나와 동일)")
    explanation: str = Field(..., min_length=1, description="해설")


class AIQuizPayload(BaseModel):
    """AI 퀴즈 생성 응답 스키마 (최상위는 항상 객체)"""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str | None = Field(None, description="퀴즈 제목")
    language: str | None = Field(None, description="언어 태그")
    questions: list[AIQuizQuestion] = Field(..., description="문항 목록")


class GenerationRequest(BaseModel):
    """문제 생성 요청 (내부 사용, 정규화 이전 값)"""
    language: str | None = None
    difficulty: str | None = None
    question_count: int | None = None
    choice_count: int | None = None
    question_type: str = "mcq"
    context: dict[str, str | None] = Field(default_factory=dict)
    source_text: str | None = None
    allow_general_knowledge: bool = False
    strict_language: bool = True
    title_hint: str | None = None


class GenerationContract(BaseModel):
    """생성 계약: 출력 스키마 + 프롬프트 + 검증 규칙"""
    model_config = ConfigDict(frozen=True)

    language: str
    language_name: str
    difficulty: str
    question_count: int
    choice_count: int
    question_type: str
    context: dict[str, str]
    grounded: bool
    strict_language: bool
    system_prompt: str
    user_prompt: str
    response_schema: dict[str, Any]
    temperature: float
    variation_token: str | None = None
    fallback_title: str


class GeneratedQuestion(BaseModel):
    """검증/정규화가 끝난 문항"""
    idx: int
    type: str
    question: str
    choices: list[str]
    answer: str
    explanation: str


class GeneratedQuiz(BaseModel):
    """검증/정규화가 끝난 퀴즈 페이로드"""
    title: str
    language: str
    questions: list[GeneratedQuestion]
    model_calls: int = Field(1, description="모델 호출 횟수 (수정 요청 포함)")
