"""Deterministic grading of quiz answers."""

from collections.abc import Collection, Sequence

from pydantic import BaseModel, Field

from toefl_quiz.models.quiz import Question, Quiz

AnswerSlot = Collection[int] | None


class QuizResult(BaseModel):
    """Outcome of grading one set of answers."""

    score: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    correctness: list[bool] = Field(
        default_factory=list,
        description="Per-question correctness, in question order",
    )

    @property
    def accuracy(self) -> float:
        """Percentage of questions answered correctly."""
        if self.total == 0:
            return 0.0
        return self.score / self.total * 100


def correct_choice_indices(question: Question) -> set[int]:
    """Get the indices of the choices marked correct."""
    return question.correct_choice_indices


def is_answer_correct(question: Question, answer: AnswerSlot) -> bool:
    """
    Check a single answer slot against a question.

    The answer is correct only when the selected indices equal the correct
    indices exactly. Unanswered slots and questions without any correct
    choice are never correct.
    """
    if answer is None:
        return False
    correct = correct_choice_indices(question)
    if not correct:
        return False
    return set(answer) == correct


def _check_lengths(quiz: Quiz, user_answers: Sequence[AnswerSlot]) -> None:
    if len(user_answers) != quiz.total_questions:
        raise ValueError(
            f"Expected {quiz.total_questions} answer slots, got {len(user_answers)}"
        )


def grade_quiz(quiz: Quiz, user_answers: Sequence[AnswerSlot]) -> QuizResult:
    """
    Grade a full set of answers.

    Args:
        quiz: The quiz that was taken
        user_answers: One slot per question, None or the selected choice indices

    Returns:
        QuizResult with the score and per-question correctness
    """
    _check_lengths(quiz, user_answers)
    correctness = [
        is_answer_correct(question, answer)
        for question, answer in zip(quiz.questions, user_answers)
    ]
    return QuizResult(score=sum(correctness), total=quiz.total_questions, correctness=correctness)


def score_quiz(quiz: Quiz, user_answers: Sequence[AnswerSlot]) -> int:
    """Get the number of correctly answered questions."""
    return grade_quiz(quiz, user_answers).score


def incorrect_questions(quiz: Quiz, user_answers: Sequence[AnswerSlot]) -> list[Question]:
    """Get the questions that were answered wrongly or left unanswered."""
    result = grade_quiz(quiz, user_answers)
    return [q for q, correct in zip(quiz.questions, result.correctness) if not correct]
