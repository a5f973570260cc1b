from app.services.ai_service import GeminiModelCaller
from app.services.attempt_service import (
    finish_attempt,
    get_attempt,
    start_attempt,
    submit_answer,
)
from app.services.extraction_service import (
    ensure_sufficient_text,
    extract_images_text,
    extract_pdf_text,
)
from app.services.quiz_generation import QuizGenerationEngine
from app.services.quiz_service import (
    delete_quiz,
    generate_from_text,
    generate_from_topic,
    get_quiz,
    list_quizzes,
    regenerate,
)
from app.services.quiz_spec_builder import QuizSpecBuilder

__all__ = [
    "GeminiModelCaller",
    "QuizGenerationEngine",
    "QuizSpecBuilder",
    "extract_pdf_text",
    "extract_images_text",
    "ensure_sufficient_text",
    "generate_from_topic",
    "generate_from_text",
    "regenerate",
    "get_quiz",
    "list_quizzes",
    "delete_quiz",
    "start_attempt",
    "submit_answer",
    "finish_attempt",
    "get_attempt",
]
