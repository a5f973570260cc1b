"""공통 테스트 픽스처: 인메모리 SQLite DB, 가짜 모델 호출기, API 클라이언트"""
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_generation_engine
from app.main import app
from app.models import Base
from app.models.base import get_db
from app.services.quiz_generation import QuizGenerationEngine


class FakeModelCaller:
    """정해진 응답을 순서대로 반환하는 모델 호출기

    마지막 응답은 계속 반복된다. 응답이 예외 인스턴스면 그대로 발생시킨다.
    """

    def __init__(self, responses=None, transcription: str = ""):
        self.responses = list(responses or [])
        self.transcription = transcription
        self.calls: list[dict] = []
        self.image_calls: list[list[tuple[bytes, str]]] = []

    async def complete(self, system_prompt, user_prompt, response_schema=None, temperature=0.4) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "response_schema": response_schema,
                "temperature": temperature,
            }
        )
        if not self.responses:
            raise AssertionError("예상하지 못한 모델 호출")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def transcribe_images(self, images):
        self.image_calls.append(list(images))
        return self.transcription


def romanian_question(number: int, choice_count: int = 3) -> dict:
    """루마니아어 문항 하나 (언어 판별을 통과할 만큼 불용어 포함)"""
    choices = [f"Varianta {number}.{j}" for j in range(choice_count)]
    return {
        "type": "mcq",
        "question": f"Care este rolul elementului numărul {number} în sistemul descris pentru această lecție?",
        "choices": choices,
        "answer": choices[0],
        "explanation": f"Răspunsul corect este varianta {number}.0 pentru că așa este prezentat în material.",
    }


def english_question(number: int, choice_count: int = 3) -> dict:
    choices = [f"Option {number}.{j}" for j in range(choice_count)]
    return {
        "type": "mcq",
        "question": f"What is the role of the element number {number} in the system that is described in this lesson?",
        "choices": choices,
        "answer": choices[0],
        "explanation": f"The correct answer is option {number}.0 because it is the one that is stated in the text.",
    }


def quiz_payload(
    question_count: int = 5,
    choice_count: int = 3,
    language: str = "ro",
    title: str | None = "Test de verificare",
) -> dict:
    """모델 출력 형태의 퀴즈 페이로드"""
    make = romanian_question if language == "ro" else english_question
    return {
        "title": title,
        "language": language,
        "questions": [make(number, choice_count) for number in range(1, question_count + 1)],
    }


@pytest.fixture
def make_quiz_json():
    """퀴즈 JSON 문자열 생성기"""

    def _make(question_count: int = 5, choice_count: int = 3, language: str = "ro", **overrides) -> str:
        payload = quiz_payload(question_count, choice_count, language)
        payload.update(overrides)
        return json.dumps(payload, ensure_ascii=False)

    return _make


@pytest.fixture
def make_quiz_payload():
    """퀴즈 페이로드(dict) 생성기 (문항을 직접 수정할 때 사용)"""
    return quiz_payload


@pytest_asyncio.fixture
async def test_engine():
    """테스트용 인메모리 SQLite 엔진 (FK cascade 활성화)"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db_session(test_session_factory):
    """테스트용 DB 세션"""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def fake_model():
    """기본 가짜 모델 (응답은 테스트에서 지정)"""
    return FakeModelCaller()


@pytest.fixture
def generation_engine(fake_model):
    return QuizGenerationEngine(fake_model)


@pytest_asyncio.fixture
async def client(test_session_factory, generation_engine):
    """API 테스트 클라이언트 (DB 세션과 생성 엔진을 테스트용으로 교체)"""

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_engine] = lambda: generation_engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
