"""Gemini 호출 래퍼 테스트 (오류는 모두 GenerationUnavailable로 변환)"""
import time
from unittest.mock import MagicMock, patch

import httpx
import pytest
from google.genai.errors import ClientError, ServerError

from app.core.config import Settings
from app.exceptions import GenerationUnavailable
from app.services.ai_service import GeminiModelCaller


def make_caller(side_effect=None, text: str = '{"questions": []}', **overrides) -> GeminiModelCaller:
    client = MagicMock()
    if side_effect is not None:
        client.models.generate_content.side_effect = side_effect
    else:
        client.models.generate_content.return_value = MagicMock(text=text)
    return GeminiModelCaller(client, Settings(_env_file=None, **overrides))


@pytest.mark.asyncio
async def test_complete_returns_text():
    caller = make_caller(text='{"title": "T"}')

    result = await caller.complete("system", "user", {"type": "object"}, temperature=0.3)

    assert result == '{"title": "T"}'
    kwargs = caller.client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-2.5-flash"
    assert kwargs["contents"] == "user"
    assert kwargs["config"].system_instruction == "system"
    assert kwargs["config"].temperature == 0.3
    assert kwargs["config"].response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_complete_without_api_key():
    """API 키가 없으면 호출 없이 GenerationUnavailable"""
    caller = GeminiModelCaller.from_settings(Settings(_env_file=None, gemini_api_key=None))

    with pytest.raises(GenerationUnavailable):
        await caller.complete("system", "user")


@pytest.mark.asyncio
async def test_complete_timeout():
    """시간 제한을 넘으면 GenerationUnavailable (재시도 없음)"""

    def slow_call(**kwargs):
        time.sleep(0.3)
        return MagicMock(text="{}")

    caller = make_caller(side_effect=slow_call, gemini_timeout_seconds=0.05)

    with pytest.raises(GenerationUnavailable):
        await caller.complete("system", "user")
    assert caller.client.models.generate_content.call_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ServerError(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}),
        ClientError(403, {"error": {"code": 403, "message": "API key leaked", "status": "PERMISSION_DENIED"}}),
        httpx.ConnectError("connection refused"),
        ConnectionResetError("reset"),
    ],
)
async def test_complete_errors_become_unavailable(error):
    caller = make_caller(side_effect=error)

    with pytest.raises(GenerationUnavailable):
        await caller.complete("system", "user")
    assert caller.client.models.generate_content.call_count == 1


@pytest.mark.asyncio
async def test_transcribe_images_keeps_order():
    """이미지는 업로드 순서대로 전달"""
    caller = make_caller(text="Pagina 1\n\nPagina 2")

    result = await caller.transcribe_images([(b"one", "image/jpeg"), (b"two", "image/png")])

    assert result == "Pagina 1\n\nPagina 2"
    contents = caller.client.models.generate_content.call_args.kwargs["contents"]
    assert len(contents) == 3
    assert contents[0].inline_data.data == b"one"
    assert contents[1].inline_data.mime_type == "image/png"
    assert isinstance(contents[2], str)


def test_client_http_timeout_matches_call_timeout():
    """HTTP 타임아웃(ms)은 호출 제한 시간과 같게 설정"""
    with patch("app.services.ai_service.genai.Client") as mock_client:
        caller = GeminiModelCaller.from_settings(
            Settings(_env_file=None, gemini_api_key="test-key", gemini_timeout_seconds=45)
        )

    assert caller.client is mock_client.return_value
    kwargs = mock_client.call_args.kwargs
    assert kwargs["api_key"] == "test-key"
    assert kwargs["http_options"].timeout == 45000
