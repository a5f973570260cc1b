from app.schemas.ai import (
    AIQuizPayload,
    AIQuizQuestion,
    GeneratedQuestion,
    GeneratedQuiz,
    GenerationContract,
    GenerationRequest,
)
from app.schemas.attempt import (
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    AttemptAnswerResponse,
    AttemptDetailResponse,
    AttemptResponse,
    AttemptStartRequest,
)
from app.schemas.quiz import (
    QuestionResponse,
    QuizCreatedResponse,
    QuizGenerationOptions,
    QuizListResponse,
    QuizResponse,
    QuizSummaryResponse,
    RegenerateRequest,
    TextQuizCreateRequest,
    TopicQuizCreateRequest,
)

__all__ = [
    "AIQuizPayload",
    "AIQuizQuestion",
    "GeneratedQuestion",
    "GeneratedQuiz",
    "GenerationContract",
    "GenerationRequest",
    "AttemptStartRequest",
    "AnswerSubmitRequest",
    "AnswerSubmitResponse",
    "AttemptAnswerResponse",
    "AttemptResponse",
    "AttemptDetailResponse",
    "QuizGenerationOptions",
    "TopicQuizCreateRequest",
    "TextQuizCreateRequest",
    "RegenerateRequest",
    "QuizCreatedResponse",
    "QuestionResponse",
    "QuizResponse",
    "QuizSummaryResponse",
    "QuizListResponse",
]
