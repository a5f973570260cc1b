"""생성 계약 실행: 생성 -> 파싱 -> 검증 -> (1회) 수정 요청 -> 정규화

모델 출력은 신뢰하지 않는 외부 페이로드로 취급한다.
- 파싱 실패는 GenerationFormatError, 규칙 위반은 GenerationSemanticError로 분류
- 실패 시 위반 규칙 목록과 이전 출력을 담아 수정 요청을 최대 1회 보냄
- 그래도 실패하면 GenerationFailed (모델 호출 불가는 GenerationUnavailable 그대로 전파)
"""
import json
import logging

from pydantic import ValidationError

from app.core.config import Settings, settings as default_settings
from app.exceptions import GenerationFailed, GenerationFormatError, GenerationSemanticError
from app.schemas.ai import AIQuizPayload, GeneratedQuestion, GeneratedQuiz, GenerationContract
from app.utils.language import detect_language_mismatch
from app.utils.text import choice_key, normalize_question_text, strip_code_fence, truncate

logger = logging.getLogger(__name__)

# 최초 생성 1회 + 수정 요청 1회
MAX_GENERATION_ATTEMPTS = 2

# 수정 요청에 포함할 이전 출력 최대 길이
REPAIR_OUTPUT_LIMIT = 12000

# 파싱 오류 보고 개수 제한
MAX_REPORTED_ERRORS = 10


def parse_payload(raw: str) -> AIQuizPayload:
    """모델 원문 -> AIQuizPayload (실패 시 GenerationFormatError)"""
    text = strip_code_fence(raw or "")
    if not text:
        raise GenerationFormatError(["empty output: expected a JSON object"])

    # JSON 앞뒤에 설명 문장이 붙은 경우 객체 부분만 사용
    start, end = text.find("{"), text.rfind("}")
    if not text.startswith("[") and start >= 0 and end > start:
        text = text[start:end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationFormatError([f"malformed JSON: {e.msg} at position {e.pos}"])

    if not isinstance(data, dict):
        raise GenerationFormatError(
            ["top-level value must be a JSON object with a \"questions\" array"]
        )

    try:
        return AIQuizPayload.model_validate(data)
    except ValidationError as e:
        violations = []
        for error in e.errors()[:MAX_REPORTED_ERRORS]:
            location = ".".join(str(part) for part in error["loc"]) or "payload"
            violations.append(f"invalid field {location}: {error['msg']}")
        raise GenerationFormatError(violations)


def find_answer(answer: str, choices: list[str]) -> str | None:
    """정답과 일치하는 선택지 반환 (정확히 일치 우선, 대소문자만 다르면 해당 선택지로 맞춤)"""
    answer = answer.strip()
    for choice in choices:
        if choice == answer:
            return choice
    key = choice_key(answer)
    matches = [choice for choice in choices if choice_key(choice) == key]
    if len(matches) == 1:
        return matches[0]
    return None


def validate_payload(payload: AIQuizPayload, contract: GenerationContract) -> list[str]:
    """의미 검증, 위반 규칙 목록 반환 (빈 목록이면 통과)"""
    violations: list[str] = []

    if len(payload.questions) != contract.question_count:
        violations.append(
            f"question count mismatch: expected {contract.question_count}, got {len(payload.questions)}"
        )

    seen_questions: dict[str, int] = {}
    for number, item in enumerate(payload.questions, start=1):
        choices = [choice.strip() for choice in item.choices]

        if len(choices) != contract.choice_count:
            violations.append(
                f"question {number}: choice count mismatch: expected {contract.choice_count}, got {len(choices)}"
            )
        if any(not choice for choice in choices):
            violations.append(f"question {number}: empty choice")

        keys = [choice_key(choice) for choice in choices]
        if len(set(keys)) != len(keys):
            violations.append(f"question {number}: choices are not distinct")
        elif find_answer(item.answer, choices) is None:
            violations.append(f"question {number}: answer not in choices: {item.answer!r}")

        normalized = normalize_question_text(item.question)
        if normalized in seen_questions:
            violations.append(
                f"question {number}: duplicate of question {seen_questions[normalized]}"
            )
        else:
            seen_questions[normalized] = number

    if contract.strict_language and payload.questions:
        parts = [payload.title or ""]
        for item in payload.questions:
            parts += [item.question, *item.choices, item.explanation]
        detected = detect_language_mismatch(" ".join(parts), contract.language)
        if detected:
            violations.append(
                f"language mismatch: expected {contract.language}, output appears to be {detected}"
            )

    return violations


def normalize_payload(payload: AIQuizPayload, contract: GenerationContract) -> GeneratedQuiz:
    """검증 통과한 페이로드 정규화 (trim, idx 재부여, 정답을 선택지 원문으로 맞춤)"""
    questions = []
    for idx, item in enumerate(payload.questions):
        choices = [choice.strip() for choice in item.choices]
        answer = find_answer(item.answer, choices)
        if answer is None:
            # validate_payload 통과 후에는 발생하지 않음
            raise GenerationSemanticError([f"question {idx + 1}: answer not in choices: {item.answer!r}"])
        questions.append(
            GeneratedQuestion(
                idx=idx,
                type=contract.question_type,
                question=item.question.strip(),
                choices=choices,
                answer=answer,
                explanation=item.explanation.strip(),
            )
        )

    title = (payload.title or "").strip() or contract.fallback_title
    return GeneratedQuiz(title=truncate(title, 280), language=contract.language, questions=questions)


def build_repair_prompt(contract: GenerationContract, raw_output: str, violations: list[str]) -> str:
    """수정 요청 프롬프트 (위반 규칙 + 이전 출력 + 원래 지시)"""
    rules = "\n".join(f"- {violation}" for violation in violations)
    return (
        "Your previous answer did not satisfy the required JSON contract.\n"
        f"VIOLATED RULES:\n{rules}\n\n"
        "PREVIOUS OUTPUT:\n<<<\n"
        f"{truncate(raw_output or '', REPAIR_OUTPUT_LIMIT)}\n>>>\n\n"
        "Return a corrected JSON object that fixes every violated rule and follows the original "
        "instructions below exactly. Return only the JSON object.\n\n"
        f"ORIGINAL INSTRUCTIONS:\n{contract.user_prompt}"
    )


class QuizGenerationEngine:
    """생성 계약을 외부 모델에 대해 실행

    model_caller는 `async complete(system_prompt, user_prompt, response_schema, temperature) -> str`
    를 제공하는 객체 (운영: GeminiModelCaller, 테스트: 가짜 객체)
    """

    def __init__(self, model_caller, config: Settings | None = None):
        self.model_caller = model_caller
        self.config = config or default_settings

    def parse_and_validate(self, raw: str, contract: GenerationContract) -> GeneratedQuiz:
        payload = parse_payload(raw)
        violations = validate_payload(payload, contract)
        if violations:
            raise GenerationSemanticError(violations)
        return normalize_payload(payload, contract)

    async def generate(self, contract: GenerationContract) -> GeneratedQuiz:
        prompt = contract.user_prompt
        temperature = contract.temperature
        last_error: GenerationFormatError | GenerationSemanticError | None = None

        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            logger.info(
                f"퀴즈 생성 모델 호출 (시도 {attempt}/{MAX_GENERATION_ATTEMPTS}): "
                f"language={contract.language}, questions={contract.question_count}, "
                f"choices={contract.choice_count}, grounded={contract.grounded}, "
                f"variation={contract.variation_token is not None}"
            )
            raw = await self.model_caller.complete(
                contract.system_prompt,
                prompt,
                contract.response_schema,
                temperature,
            )

            try:
                quiz = self.parse_and_validate(raw, contract)
            except (GenerationFormatError, GenerationSemanticError) as e:
                last_error = e
                logger.warning(
                    f"모델 출력 검증 실패 (시도 {attempt}/{MAX_GENERATION_ATTEMPTS}, {e.reason}): "
                    f"{e.violations}"
                )
                prompt = build_repair_prompt(contract, raw, e.violations)
                temperature = self.config.repair_temperature
                continue

            if attempt > 1:
                logger.info(f"수정 요청 후 퀴즈 생성 성공 (시도 {attempt}/{MAX_GENERATION_ATTEMPTS})")
            return quiz.model_copy(update={"model_calls": attempt})

        logger.error(
            f"퀴즈 생성 최종 실패: reason={last_error.reason}, violations={last_error.violations}"
        )
        raise GenerationFailed(last_error.reason, last_error.violations)
