"""Errors raised while generating a quiz."""

from toefl_quiz.models.quiz import QuestionType


class QuizGenerationError(Exception):
    """Base class for quiz generation failures."""


class EmptyArticleError(QuizGenerationError, ValueError):
    """Raised when generation is requested for a blank article."""

    def __init__(self, message: str = "The article is empty; paste some text to generate a quiz."):
        super().__init__(message)


class GenerationServiceError(QuizGenerationError):
    """The generative service call failed or returned non-conforming output."""

    def __init__(
        self,
        message: str,
        question_number: int | None = None,
        question_type: QuestionType | None = None,
    ):
        self.message = message
        self.question_number = question_number
        self.question_type = question_type
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.question_number is None:
            return self.message
        label = f"question {self.question_number}"
        if self.question_type is not None:
            label += f" ({self.question_type.value})"
        return f"{label}: {self.message}"


class AggregateGenerationFailure(QuizGenerationError):
    """One or more question generation calls failed; no quiz was produced."""

    def __init__(self, failures: list[GenerationServiceError], total: int):
        self.failures = failures
        self.total = total
        numbers = ", ".join(str(f.question_number) for f in failures)
        first = failures[0] if failures else None
        message = f"Failed to generate {len(failures)} of {total} questions (numbers: {numbers})"
        if first is not None:
            message += f". First error: {first}"
        super().__init__(message)

    @property
    def failed_numbers(self) -> list[int]:
        """Question numbers that failed, in ascending order."""
        return sorted(f.question_number for f in self.failures if f.question_number is not None)
