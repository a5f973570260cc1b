import asyncio
import logging
from typing import Any

import httpx
from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError

from app.core.config import Settings, settings as default_settings
from app.exceptions import GenerationUnavailable

logger = logging.getLogger(__name__)

IMAGE_TRANSCRIBE_PROMPT = (
    "Transcribe all readable text from these photographed pages, in page order. "
    "Keep the original language. Return plain text only, no commentary. "
    "Separate pages with a blank line."
)


class GeminiModelCaller:
    """Gemini 호출 래퍼

    클라이언트는 프로세스 시작 시 1회 생성해서 주입한다.
    동시 요청 수는 Semaphore로, 호출 시간은 timeout으로 제한하며 자동 재시도는 하지 않는다.
    """

    def __init__(self, client: genai.Client | None, config: Settings | None = None):
        self.client = client
        self.config = config or default_settings
        self._semaphore = asyncio.Semaphore(max(1, self.config.gemini_max_concurrent))
        logger.info(f"Gemini API 동시 요청 제한 설정: 최대 {self.config.gemini_max_concurrent}개")

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "GeminiModelCaller":
        config = config or default_settings
        client = None
        if config.gemini_api_key:
            # HTTP 타임아웃(ms)을 호출 제한 시간과 맞춰 executor 스레드가 남지 않게 함
            client = genai.Client(
                api_key=config.gemini_api_key,
                http_options=types.HttpOptions(timeout=int(config.gemini_timeout_seconds * 1000)),
            )
        if client is None:
            logger.warning("GEMINI_API_KEY가 설정되지 않았습니다. 문제 생성 요청은 실패합니다")
        return cls(client, config)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: dict[str, Any] | None = None,
        temperature: float = 0.4,
    ) -> str:
        """구조화된 프롬프트로 텍스트(JSON 기대) 생성"""
        generation_config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=self.config.gemini_max_output_tokens,
            response_mime_type="application/json",
            response_json_schema=response_schema,
        )
        response = await self._generate(self.config.gemini_model, user_prompt, generation_config)
        return response.text or ""

    async def transcribe_images(self, images: list[tuple[bytes, str]]) -> str:
        """사진 촬영된 페이지에서 텍스트 추출 (업로드 순서 유지)"""
        parts: list[Any] = [types.Part.from_bytes(data=data, mime_type=mime) for data, mime in images]
        parts.append(IMAGE_TRANSCRIBE_PROMPT)
        generation_config = types.GenerateContentConfig(temperature=0.0)
        response = await self._generate(self.config.gemini_vision_model, parts, generation_config)
        return response.text or ""

    async def _generate(self, model: str, contents: Any, generation_config: types.GenerateContentConfig):
        if self.client is None:
            raise GenerationUnavailable("GEMINI_API_KEY가 설정되지 않아 문제 생성 모델을 사용할 수 없습니다")

        async with self._semaphore:
            # Gemini 동기 API를 executor로 래핑
            loop = asyncio.get_running_loop()
            call = loop.run_in_executor(
                None,
                lambda: self.client.models.generate_content(
                    model=model,
                    contents=contents,
                    config=generation_config,
                ),
            )
            try:
                return await asyncio.wait_for(call, timeout=self.config.gemini_timeout_seconds)
            except asyncio.TimeoutError:
                logger.error(f"Gemini API 타임아웃: model={model}, timeout={self.config.gemini_timeout_seconds}s")
                raise GenerationUnavailable("문제 생성 모델 응답 시간이 초과되었습니다. 잠시 후 다시 시도해주세요.")
            except ClientError as e:
                error_message = str(e).lower()
                if "403" in str(e) or "permission_denied" in error_message or "leaked" in error_message:
                    logger.error(f"Gemini API 키 문제 감지: status_code=403, error_type={type(e).__name__}")
                else:
                    logger.error(
                        f"Gemini API ClientError: status_code={getattr(e, 'code', 'unknown')}, "
                        f"error_type={type(e).__name__}"
                    )
                raise GenerationUnavailable(f"문제 생성 모델 호출에 실패했습니다: {type(e).__name__}") from e
            except ServerError as e:
                logger.error(f"Gemini API ServerError: {str(e)[:200]}")
                raise GenerationUnavailable() from e
            except (httpx.HTTPError, OSError) as e:
                logger.error(f"Gemini API 연결 오류: error_type={type(e).__name__}, error_message={str(e)[:200]}")
                raise GenerationUnavailable() from e
