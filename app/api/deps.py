from app.services.ai_service import GeminiModelCaller
from app.services.quiz_generation import QuizGenerationEngine

_generation_engine: QuizGenerationEngine | None = None


def get_generation_engine() -> QuizGenerationEngine:
    """퀴즈 생성 엔진 싱글톤 (Gemini 클라이언트는 1회 생성 후 재사용)"""
    global _generation_engine
    if _generation_engine is None:
        _generation_engine = QuizGenerationEngine(GeminiModelCaller.from_settings())
    return _generation_engine
