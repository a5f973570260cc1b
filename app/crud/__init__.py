from app.crud.attempt import (
    count_correct_answers,
    create_attempt,
    finish_attempt,
    get_answer,
    get_answers_by_attempt,
    get_attempt_by_id,
    upsert_answer,
)
from app.crud.quiz import (
    create_quiz,
    delete_quiz,
    get_question_by_id,
    get_question_count,
    get_quiz_by_id,
    get_quiz_with_questions,
    list_quizzes_by_user,
)

__all__ = [
    "create_quiz",
    "get_quiz_by_id",
    "get_quiz_with_questions",
    "get_question_by_id",
    "get_question_count",
    "list_quizzes_by_user",
    "delete_quiz",
    "create_attempt",
    "get_attempt_by_id",
    "get_answer",
    "get_answers_by_attempt",
    "upsert_answer",
    "count_correct_answers",
    "finish_attempt",
]
