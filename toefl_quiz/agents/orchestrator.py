"""Generation Orchestrator - Turns one article into one complete quiz."""

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from langchain_core.language_models import BaseChatModel

from toefl_quiz.agents.llm import get_chat_model
from toefl_quiz.agents.metadata import generate_quiz_metadata
from toefl_quiz.agents.question import generate_question
from toefl_quiz.config.settings import Settings, get_settings
from toefl_quiz.exceptions import (
    AggregateGenerationFailure,
    EmptyArticleError,
    GenerationServiceError,
)
from toefl_quiz.models.quiz import GenerationProgress, Question, QuestionType, Quiz

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[GenerationProgress], None]

METADATA_DONE_PERCENTAGE = 10.0
QUESTIONS_PERCENTAGE_RANGE = 80.0
ASSEMBLING_PERCENTAGE = 95.0


@dataclass(frozen=True)
class QuestionPlan:
    """An ordered, versioned list of question types to generate."""

    version: str
    question_types: tuple[QuestionType, ...]

    def __post_init__(self):
        if not self.question_types:
            raise ValueError("A question plan needs at least one question type")

    def __len__(self) -> int:
        return len(self.question_types)

    def items(self) -> Iterator[tuple[int, QuestionType]]:
        """Yield (question_number, question_type) pairs numbered from 1."""
        return enumerate(self.question_types, start=1)


DEFAULT_QUESTION_PLAN = QuestionPlan(
    version="toefl-reading-12",
    question_types=(
        QuestionType.FACTUAL_INFO,
        QuestionType.VOCABULARY,
        QuestionType.INFERENCE,
        QuestionType.FACTUAL_INFO,
        QuestionType.SENTENCE_SIMPLIFICATION,
        QuestionType.NEGATIVE_FACTUAL_INFO,
        QuestionType.VOCABULARY,
        QuestionType.INFERENCE,
        QuestionType.INSERT_TEXT,
        QuestionType.FACTUAL_INFO,
        QuestionType.INFERENCE,
        QuestionType.PROSE_SUMMARY,
    ),
)


class ProgressReporter:
    """
    Forwards progress to a caller callback.

    Percentages never decrease, and nothing is forwarded once closed.
    """

    def __init__(self, callback: ProgressCallback | None = None):
        self._callback = callback
        self._percentage = 0.0
        self._closed = False

    @property
    def percentage(self) -> float:
        return self._percentage

    def emit(self, stage: str, percentage: float) -> None:
        if self._closed:
            return
        self._percentage = max(self._percentage, min(percentage, 100.0))
        if self._callback is not None:
            self._callback(GenerationProgress(stage=stage, percentage=self._percentage))

    def close(self) -> None:
        self._closed = True


async def generate_quiz(
    article: str,
    on_progress: ProgressCallback | None = None,
    *,
    plan: QuestionPlan = DEFAULT_QUESTION_PLAN,
    llm: BaseChatModel | None = None,
    settings: Settings | None = None,
) -> Quiz:
    """
    Generate a complete quiz from an article.

    Metadata is generated first; then one request per plan item runs
    concurrently. Every question request settles before the outcome is
    decided, and any failure fails the whole quiz.

    Args:
        article: Source passage
        on_progress: Called with GenerationProgress as work completes
        plan: Ordered question types to generate
        llm: Chat model used for every request; per-step models are built
            from settings when omitted
        settings: Application settings, loaded from the environment when omitted

    Returns:
        Quiz with questions numbered 1..len(plan)

    Raises:
        EmptyArticleError: If the article is blank
        GenerationServiceError: If metadata generation fails
        AggregateGenerationFailure: If any question fails

    Exceptions raised by on_progress propagate unchanged; pending question
    requests are cancelled first.
    """
    if not article or not article.strip():
        raise EmptyArticleError()

    settings = settings or get_settings()
    question_llm = llm or get_chat_model(
        settings, settings.question_model_name, settings.question_temperature
    )
    reporter = ProgressReporter(on_progress)
    total = len(plan)

    logger.info("Generating quiz with plan %s (%d questions)", plan.version, total)

    try:
        reporter.emit("metadata", 0.0)
        metadata = await generate_quiz_metadata(article, llm=llm, settings=settings)
        reporter.emit("metadata", METADATA_DONE_PERCENTAGE)

        reporter.emit(f"Generating question 1 of {total}", METADATA_DONE_PERCENTAGE)
        tasks = [
            asyncio.create_task(
                generate_question(
                    article, number, question_type, llm=question_llm, settings=settings
                )
            )
            for number, question_type in plan.items()
        ]
        try:
            completed = 0
            for finished in asyncio.as_completed(tasks):
                try:
                    await finished
                except Exception:
                    # Collected with the other results after the join
                    continue
                completed += 1
                percentage = (
                    METADATA_DONE_PERCENTAGE
                    + (completed / total) * QUESTIONS_PERCENTAGE_RANGE
                )
                stage = (
                    f"Generating question {completed + 1} of {total}"
                    if completed < total
                    else "All questions generated"
                )
                reporter.emit(stage, percentage)
        finally:
            for task in tasks:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)

        questions, failures = collect_results(results, plan)
        if failures:
            for failure in failures:
                logger.warning("Question generation failed: %s", failure)
            raise AggregateGenerationFailure(failures, total)

        reporter.emit("assembling", ASSEMBLING_PERCENTAGE)
        questions.sort(key=lambda q: q.question_number)
        quiz = Quiz(
            title=metadata.title,
            summary_introductory_sentence=metadata.summary_introductory_sentence,
            questions=questions,
        )
        reporter.emit("done", 100.0)
    finally:
        reporter.close()

    logger.info("Generated quiz %r with %d questions", quiz.title, quiz.total_questions)
    return quiz


def collect_results(
    results: list[Question | BaseException], plan: QuestionPlan
) -> tuple[list[Question], list[GenerationServiceError]]:
    """
    Split settled results into questions and failures.

    Unexpected exceptions are wrapped so that every failure names the
    question it belongs to.

    Args:
        results: Settled gather results, in plan order
        plan: The plan the results were produced from

    Returns:
        Tuple of (questions, failures)
    """
    questions: list[Question] = []
    failures: list[GenerationServiceError] = []

    for (number, question_type), result in zip(plan.items(), results):
        if isinstance(result, GenerationServiceError):
            failures.append(result)
        elif isinstance(result, BaseException):
            failures.append(
                GenerationServiceError(
                    f"{type(result).__name__}: {result}",
                    question_number=number,
                    question_type=question_type,
                )
            )
        else:
            questions.append(result)

    return questions, failures
