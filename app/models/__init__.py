from app.models.base import Base, get_db
from app.models.attempt import Attempt, AttemptAnswer
from app.models.question import Question
from app.models.quiz import Quiz

__all__ = ["Base", "Quiz", "Question", "Attempt", "AttemptAnswer", "get_db"]
