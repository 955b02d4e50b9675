"""Pydantic models for quiz attempts and history groups."""

import uuid
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from .quiz import CamelModel, Quiz

Answer = list[int] | None


class QuizAttempt(CamelModel):
    """One completed run through a quiz. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_answers: list[Answer] = Field(
        ...,
        description="One slot per question: None if unanswered, else chosen indices",
    )
    score: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("user_answers")
    @classmethod
    def normalize_answers(cls, v: list[Answer]) -> list[Answer]:
        """Store each answered slot as a sorted list of unique indices."""
        normalized = []
        for slot in v:
            if slot is None:
                normalized.append(None)
                continue
            if any(i < 0 for i in slot):
                raise ValueError("Choice indices cannot be negative")
            normalized.append(sorted(set(slot)))
        return normalized


class QuizHistoryGroup(CamelModel):
    """An article/quiz pair together with every attempt made against it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    article: str
    quiz: Quiz
    title: str
    attempts: list[QuizAttempt] = Field(default_factory=list)
    last_attempt_timestamp: datetime

    @property
    def latest_attempt(self) -> QuizAttempt | None:
        """Get the most recently appended attempt."""
        return self.attempts[-1] if self.attempts else None

    @property
    def best_score(self) -> int:
        """Get the highest score across all attempts."""
        return max((a.score for a in self.attempts), default=0)
