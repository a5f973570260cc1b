from typing import Any

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin


class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"
    __table_args__ = (Index("ix_quizzes_user_id_created_at", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    source_type: Mapped[str] = mapped_column(String(16), nullable=False)  # 'topic', 'pdf', 'images'
    source_meta: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    source_text: Mapped[str | None] = mapped_column(Text, default=None)
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.idx",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt",
        back_populates="quiz",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
