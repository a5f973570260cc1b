"""Quiz API 통합 테스트"""
import asyncio
import threading
import time
from unittest.mock import AsyncMock, patch

import pytest
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.exceptions import GenerationUnavailable, PersistencePartialFailure

SOURCE_TEXT = (
    "Fotosinteza este procesul prin care plantele verzi transformă energia luminii în energie chimică. "
    "Procesul are loc în cloroplaste și produce oxigen și glucoză."
)

TOPIC_BODY = {
    "user_id": "elev-1",
    "language": "ro",
    "question_count": 5,
    "choice_count": 3,
    "topic": "Fotosinteza",
}


@pytest.mark.asyncio
async def test_generate_topic_quiz(client, fake_model, make_quiz_json):
    """주제 기반 생성 후 조회"""
    fake_model.responses = [make_quiz_json(5, 3)]

    response = await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)

    assert response.status_code == 201
    quiz_id = response.json()["quiz_id"]

    response = await client.get(f"/api/v1/quiz/{quiz_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["language"] == "ro"
    assert [q["idx"] for q in data["questions"]] == [0, 1, 2, 3, 4]
    assert all(q["answer"] in q["choices"] for q in data["questions"])


@pytest.mark.asyncio
async def test_generate_topic_quiz_missing_user_id(client, fake_model):
    """user_id 누락은 400"""
    body = dict(TOPIC_BODY, user_id="")

    response = await client.post("/api/v1/quiz/topic", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "InputValidationError"
    assert fake_model.calls == []


@pytest.mark.asyncio
async def test_generate_topic_quiz_invalid_choice_count(client):
    """선택지 수는 3 또는 4만 허용 (요청 검증 422)"""
    response = await client.post("/api/v1/quiz/topic", json=dict(TOPIC_BODY, choice_count=6))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generation_failed_response(client, fake_model, make_quiz_json):
    """수정 요청 후에도 실패하면 502 + 위반 규칙 목록"""
    fake_model.responses = [make_quiz_json(7, 3)]

    response = await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)

    assert response.status_code == 502
    data = response.json()
    assert data["error"] == "GenerationFailed"
    assert data["reason"] == "semantic"
    assert "question count mismatch: expected 5, got 7" in data["violations"]
    assert len(fake_model.calls) == 2


@pytest.mark.asyncio
async def test_generation_unavailable_response(client, fake_model):
    """모델 호출 불가는 503"""
    fake_model.responses = [GenerationUnavailable()]

    response = await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)

    assert response.status_code == 503
    assert response.json()["error"] == "GenerationUnavailable"


@pytest.mark.asyncio
async def test_generate_pdf_quiz(client, fake_model, make_quiz_json):
    """PDF 업로드 기반 생성"""
    fake_model.responses = [make_quiz_json(5, 3)]

    with patch("app.services.extraction_service.extract_pdf_text", return_value=SOURCE_TEXT):
        response = await client.post(
            "/api/v1/quiz/pdf",
            data={"user_id": "elev-1", "question_count": "5"},
            files={"file": ("curs.pdf", b"%PDF-1.4 test", "application/pdf")},
        )

    assert response.status_code == 201
    quiz = (await client.get(f"/api/v1/quiz/{response.json()['quiz_id']}")).json()
    assert quiz["source_type"] == "pdf"
    assert quiz["source_meta"]["filename"] == "curs.pdf"
    assert quiz["title"] == "Test de verificare"
    assert "GROUNDING" in fake_model.calls[0]["user_prompt"]


@pytest.mark.asyncio
async def test_generate_pdf_quiz_rejects_other_file_types(client, fake_model):
    """PDF가 아닌 파일은 400"""
    response = await client.post(
        "/api/v1/quiz/pdf",
        data={"user_id": "elev-1"},
        files={"file": ("notite.txt", b"text", "text/plain")},
    )

    assert response.status_code == 400
    assert fake_model.calls == []


@pytest.mark.asyncio
async def test_generate_pdf_quiz_invalid_form_field(client):
    """폼 필드 검증 오류는 400"""
    response = await client.post(
        "/api/v1/quiz/pdf",
        data={"user_id": "elev-1", "choice_count": "5"},
        files={"file": ("curs.pdf", b"%PDF-1.4 test", "application/pdf")},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_generate_images_quiz(client, fake_model, make_quiz_json):
    """사진 업로드 기반 생성 (텍스트 추출 후 자료 기반 생성)"""
    fake_model.transcription = SOURCE_TEXT
    fake_model.responses = [make_quiz_json(3, 3)]

    response = await client.post(
        "/api/v1/quiz/images",
        data={"user_id": "elev-1", "question_count": "3"},
        files=[
            ("files", ("pagina1.jpg", b"\xff\xd8jpeg-1", "image/jpeg")),
            ("files", ("pagina2.png", b"\x89PNG-2", "image/png")),
        ],
    )

    assert response.status_code == 201
    assert len(fake_model.image_calls) == 1
    assert [content_type for _, content_type in fake_model.image_calls[0]] == ["image/jpeg", "image/png"]
    quiz = (await client.get(f"/api/v1/quiz/{response.json()['quiz_id']}")).json()
    assert quiz["source_type"] == "images"
    assert quiz["source_meta"]["image_count"] == 2


@pytest.mark.asyncio
async def test_generate_images_quiz_unreadable(client, fake_model):
    """추출 텍스트가 부족하면 400, 생성 모델 호출 없음"""
    fake_model.transcription = "abc"

    response = await client.post(
        "/api/v1/quiz/images",
        data={"user_id": "elev-1"},
        files=[("files", ("blur.jpg", b"\xff\xd8", "image/jpeg"))],
    )

    assert response.status_code == 400
    assert fake_model.calls == []


@pytest.mark.asyncio
async def test_regenerate_without_source_returns_409(client, fake_model, make_quiz_json):
    """원본 미보관 퀴즈 재생성은 409"""
    fake_model.responses = [make_quiz_json(5, 3)]
    with patch("app.services.extraction_service.extract_pdf_text", return_value=SOURCE_TEXT):
        created = await client.post(
            "/api/v1/quiz/pdf",
            data={"user_id": "elev-1", "question_count": "5", "store_source": "false"},
            files={"file": ("curs.pdf", b"%PDF-1.4 test", "application/pdf")},
        )
    quiz_id = created.json()["quiz_id"]

    response = await client.post(f"/api/v1/quiz/{quiz_id}/regenerate", json={"user_id": "elev-1"})

    assert response.status_code == 409
    assert response.json()["error"] == "NoStoredSource"


@pytest.mark.asyncio
async def test_regenerate_topic_quiz(client, fake_model, make_quiz_json):
    fake_model.responses = [make_quiz_json(5, 3)]
    created = await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)

    response = await client.post(
        f"/api/v1/quiz/{created.json()['quiz_id']}/regenerate", json={"user_id": "elev-1"}
    )

    assert response.status_code == 201
    assert response.json()["quiz_id"] != created.json()["quiz_id"]


@pytest.mark.asyncio
async def test_list_quizzes(client, fake_model, make_quiz_json):
    """사용자별 목록, 최신순, 문항 본문 제외"""
    fake_model.responses = [make_quiz_json(5, 3)]
    first = (await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)).json()["quiz_id"]
    second = (await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)).json()["quiz_id"]
    await client.post("/api/v1/quiz/topic", json=dict(TOPIC_BODY, user_id="alt-elev"))

    response = await client.get("/api/v1/quiz", params={"user_id": "elev-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [q["id"] for q in data["quizzes"]] == [second, first]
    assert data["quizzes"][0]["question_count"] == 5
    assert "questions" not in data["quizzes"][0]


@pytest.mark.asyncio
async def test_get_quiz_not_found(client):
    response = await client.get("/api/v1/quiz/999")

    assert response.status_code == 404
    assert response.json()["error"] == "QuizNotFoundError"


@pytest.mark.asyncio
async def test_delete_quiz(client, fake_model, make_quiz_json):
    """소유자가 아니면 403, 소유자는 204 후 404"""
    fake_model.responses = [make_quiz_json(5, 3)]
    quiz_id = (await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)).json()["quiz_id"]

    response = await client.delete(f"/api/v1/quiz/{quiz_id}", params={"user_id": "alt-elev"})
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/quiz/{quiz_id}", params={"user_id": "elev-1"})
    assert response.status_code == 204

    response = await client.get(f"/api/v1/quiz/{quiz_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_pdf_parsing_does_not_block_other_requests(client, fake_model, make_quiz_json):
    """PDF 파싱 중에도 다른 요청은 바로 처리됨"""
    fake_model.responses = [make_quiz_json(5, 3)]
    parse_started = threading.Event()
    timings = {}

    def slow_extract(data):
        parse_started.set()
        time.sleep(0.5)
        timings["parse_finished"] = time.monotonic()
        return SOURCE_TEXT

    async def upload_pdf():
        return await client.post(
            "/api/v1/quiz/pdf",
            data={"user_id": "elev-1", "question_count": "5"},
            files={"file": ("curs.pdf", b"%PDF-1.4 test", "application/pdf")},
        )

    async def check_health():
        while not parse_started.is_set():
            await asyncio.sleep(0.01)
        response = await client.get("/health")
        timings["health_finished"] = time.monotonic()
        return response

    with patch("app.services.extraction_service.extract_pdf_text", side_effect=slow_extract):
        upload, health = await asyncio.gather(upload_pdf(), check_health())

    assert upload.status_code == 201
    assert health.status_code == 200
    assert timings["health_finished"] < timings["parse_finished"]


@pytest.mark.asyncio
async def test_persistence_partial_failure_response(client, fake_model, make_quiz_json):
    """저장 일부 실패는 500 + PersistencePartialFailure"""
    fake_model.responses = [make_quiz_json(5, 3)]
    error = PersistencePartialFailure("문항 저장 중 롤백 실패: quiz_id=7", quiz_id=7)

    with patch("app.crud.quiz.create_quiz", new_callable=AsyncMock, side_effect=error):
        response = await client.post("/api/v1/quiz/topic", json=TOPIC_BODY)

    assert response.status_code == 500
    assert response.json()["error"] == "PersistencePartialFailure"


@pytest.mark.asyncio
async def test_generate_images_quiz_too_many_files(client, fake_model):
    """이미지 개수 초과는 파일을 읽기 전에 400"""
    files = [
        ("files", (f"pagina{n}.jpg", b"\xff\xd8jpeg", "image/jpeg"))
        for n in range(settings.max_images + 1)
    ]

    with patch.object(UploadFile, "read", new_callable=AsyncMock) as mock_read:
        response = await client.post("/api/v1/quiz/images", data={"user_id": "elev-1"}, files=files)

    assert response.status_code == 400
    mock_read.assert_not_awaited()
    assert fake_model.image_calls == []
