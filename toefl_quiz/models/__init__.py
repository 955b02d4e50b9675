"""Data models for quiz generation and history."""

from .history import QuizAttempt, QuizHistoryGroup
from .quiz import (
    INSERTION_MARKERS,
    Choice,
    GenerationProgress,
    Question,
    QuestionOutput,
    QuestionType,
    Quiz,
    QuizMetadata,
    # Structured output models
    QuizMetadataOutput,
)

__all__ = [
    "INSERTION_MARKERS",
    "Choice",
    "GenerationProgress",
    "Question",
    "QuestionType",
    "Quiz",
    "QuizMetadata",
    "QuizMetadataOutput",
    "QuestionOutput",
    "QuizAttempt",
    "QuizHistoryGroup",
]
