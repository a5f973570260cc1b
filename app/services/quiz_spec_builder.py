"""생성 요청을 생성 계약(GenerationContract)으로 변환

입력 정규화(문항 수 보정, 언어/난이도 대체값), 출력 JSON 스키마, 프롬프트 렌더링을 담당한다.
I/O 없음. 같은 입력이면 variation_token을 제외하고 항상 같은 계약을 만든다.
"""
import logging

from app.core.config import Settings, settings as default_settings
from app.schemas.ai import GenerationContract, GenerationRequest
from app.utils.language import language_name, normalize_language
from app.utils.text import normalize_whitespace, truncate

logger = logging.getLogger(__name__)

DIFFICULTY_ALIASES: dict[str, str] = {
    "easy": "easy",
    "usor": "easy",
    "ușor": "easy",
    "uşor": "easy",
    "medium": "medium",
    "mediu": "medium",
    "hard": "hard",
    "greu": "hard",
}
DEFAULT_DIFFICULTY = "medium"

DIFFICULTY_DESCRIPTORS: dict[str, str] = {
    "easy": "easy: direct recall of definitions and key facts, unambiguous wording",
    "medium": "medium: understanding and application of concepts, plausible distractors",
    "hard": "hard, exam level: multi-step reasoning, close distractors based on common misconceptions",
}

# 프롬프트에 노출되는 컨텍스트 필드 (순서 유지)
CONTEXT_LABELS: dict[str, str] = {
    "topic": "Topic",
    "subject": "Subject",
    "level": "Level",
    "institution": "Institution",
    "profile": "Profile / specialization",
    "grade": "Grade / year",
    "notes": "Additional requests",
}

ALLOWED_CHOICE_COUNTS = (3, 4)

SYSTEM_PROMPT = (
    "You are an expert educator who writes exam-quality multiple-choice quizzes. "
    "You always answer with a single JSON object that matches the requested schema exactly, "
    "with no markdown and no commentary."
)


def normalize_difficulty(value: str | None) -> str:
    """난이도 정규화 (영어/루마니아어 별칭 허용, 기본값 medium)"""
    if not value:
        return DEFAULT_DIFFICULTY
    return DIFFICULTY_ALIASES.get(value.strip().lower(), DEFAULT_DIFFICULTY)


def build_response_schema(language: str, question_count: int, choice_count: int, question_type: str) -> dict:
    """모델 출력이 따라야 하는 JSON 스키마"""
    return {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "language": {"type": "string", "enum": [language]},
            "questions": {
                "type": "array",
                "minItems": question_count,
                "maxItems": question_count,
                "items": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string", "enum": [question_type]},
                        "question": {"type": "string"},
                        "choices": {
                            "type": "array",
                            "items": {"type": "string"},
                            "minItems": choice_count,
                            "maxItems": choice_count,
                        },
                        "answer": {
                            "type": "string",
                            "description": "Must be exactly equal to one of the strings in choices",
                        },
                        "explanation": {"type": "string"},
                    },
                    "required": ["type", "question", "choices", "answer", "explanation"],
                },
            },
        },
        "required": ["title", "language", "questions"],
    }


class QuizSpecBuilder:
    """GenerationRequest -> GenerationContract 변환기"""

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    def clamp_question_count(self, value: int | None) -> int:
        if value is None:
            value = self.config.default_question_count
        return max(self.config.min_question_count, min(self.config.max_question_count, value))

    def normalize_choice_count(self, value: int | None) -> int:
        if value is None:
            value = self.config.default_choice_count
        if value in ALLOWED_CHOICE_COUNTS:
            return value
        return ALLOWED_CHOICE_COUNTS[0] if value < ALLOWED_CHOICE_COUNTS[0] else ALLOWED_CHOICE_COUNTS[-1]

    def build(
        self,
        request: GenerationRequest,
        variation_token: str | None = None,
        temperature: float | None = None,
    ) -> GenerationContract:
        language = normalize_language(
            request.language,
            self.config.supported_languages_list,
            self.config.default_language,
        )
        if request.language and language != request.language.strip().lower().split("-")[0]:
            logger.info(f"지원하지 않는 언어 코드 대체: {request.language!r} -> {language}")

        difficulty = normalize_difficulty(request.difficulty)
        question_count = self.clamp_question_count(request.question_count)
        choice_count = self.normalize_choice_count(request.choice_count)
        context = {
            key: normalize_whitespace(value)
            for key, value in request.context.items()
            if key in CONTEXT_LABELS and value and value.strip()
        }
        source_text = normalize_whitespace(request.source_text) if request.source_text else None
        grounded = bool(source_text) and not request.allow_general_knowledge

        user_prompt = self._render_prompt(
            language=language,
            difficulty=difficulty,
            question_count=question_count,
            choice_count=choice_count,
            question_type=request.question_type,
            context=context,
            source_text=source_text,
            grounded=grounded,
            variation_token=variation_token,
        )

        return GenerationContract(
            language=language,
            language_name=language_name(language),
            difficulty=difficulty,
            question_count=question_count,
            choice_count=choice_count,
            question_type=request.question_type,
            context=context,
            grounded=grounded,
            strict_language=request.strict_language,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=user_prompt,
            response_schema=build_response_schema(language, question_count, choice_count, request.question_type),
            temperature=self.config.generation_temperature if temperature is None else temperature,
            variation_token=variation_token,
            fallback_title=self._fallback_title(context, request.title_hint),
        )

    def _fallback_title(self, context: dict[str, str], title_hint: str | None) -> str:
        for key in ("topic", "subject"):
            if context.get(key):
                return truncate(context[key], 200)
        if title_hint and title_hint.strip():
            return truncate(title_hint.strip(), 200)
        return "Quiz"

    def _render_prompt(
        self,
        language: str,
        difficulty: str,
        question_count: int,
        choice_count: int,
        question_type: str,
        context: dict[str, str],
        source_text: str | None,
        grounded: bool,
        variation_token: str | None,
    ) -> str:
        lines = [
            f"LANGUAGE: {language_name(language)} (code: {language}). "
            f"Write the title, every question, every choice and every explanation in this language only.",
            f"DIFFICULTY: {DIFFICULTY_DESCRIPTORS[difficulty]}",
        ]
        for key, label in CONTEXT_LABELS.items():
            if key in context:
                lines.append(f"{label.upper()}: {context[key]}")

        lines += [
            "",
            f"Create exactly {question_count} multiple-choice questions of type \"{question_type}\".",
            f"Each question has exactly {choice_count} distinct choices and exactly one correct answer.",
            "The \"answer\" field must be copied character for character from one of the choices.",
            "Every question must be different from the others; do not repeat or paraphrase a question.",
            "Each explanation is one or two sentences justifying the correct answer.",
            f"Set \"language\" to \"{language}\" and give the quiz a short title.",
        ]

        if variation_token:
            lines += [
                "",
                f"VARIATION: {variation_token}. This is a new variant of a quiz on the same material: "
                "choose different facts, angles and wording than a typical first quiz would.",
            ]

        if source_text:
            if grounded:
                lines += [
                    "",
                    "GROUNDING: use ONLY the source text below. Do not introduce facts, names, numbers "
                    "or definitions that are not stated in it.",
                ]
            else:
                lines += [
                    "",
                    "Base the questions primarily on the source text below; general knowledge within "
                    "the same scope may be used for distractors.",
                ]
            lines += [
                "SOURCE TEXT:",
                "<<<",
                truncate(source_text, self.config.max_source_chars),
                ">>>",
            ]
        else:
            lines += [
                "",
                "No source text is provided: use accurate general knowledge of the domain, "
                "staying within the topic and level stated above.",
            ]

        lines += [
            "",
            "Respond with a JSON object of the form:",
            '{"title": "...", "language": "' + language + '", "questions": [{"type": "' + question_type
            + '", "question": "...", "choices": [' + ", ".join(['"..."'] * choice_count)
            + '], "answer": "...", "explanation": "..."}]}',
        ]
        return "\n".join(lines)
