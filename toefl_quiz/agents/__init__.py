"""AI agents for quiz generation."""

from .metadata import generate_quiz_metadata
from .orchestrator import DEFAULT_QUESTION_PLAN, QuestionPlan, generate_quiz
from .question import generate_question

__all__ = [
    "DEFAULT_QUESTION_PLAN",
    "QuestionPlan",
    "generate_quiz",
    "generate_quiz_metadata",
    "generate_question",
]
