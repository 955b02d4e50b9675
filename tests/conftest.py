"""Shared test fixtures and configuration for pytest."""

import asyncio
import re
from datetime import datetime, timedelta
from typing import Any

import pytest

from toefl_quiz.agents.orchestrator import DEFAULT_QUESTION_PLAN
from toefl_quiz.config.settings import Settings
from toefl_quiz.history.storage import InMemoryStorage
from toefl_quiz.history.store import HistoryStore
from toefl_quiz.models.quiz import (
    Choice,
    Question,
    QuestionOutput,
    QuestionType,
    Quiz,
    QuizMetadataOutput,
)

SAMPLE_ARTICLE = """The domestication of plants began roughly ten thousand years ago in several
regions of the world. Early farmers selected seeds from plants with desirable traits,
such as larger grains or seeds that stayed on the stalk until harvest.

Over many generations this selection changed the plants themselves. Wild wheat, for
example, scatters its seeds when ripe, whereas domesticated wheat holds them, which
made the crop easier to gather but dependent on human planting."""

PROSE_SUMMARY_CORRECT = {1, 3, 4}

_NUMBER_RE = re.compile(r"question number (\d+)")
_TYPE_RE = re.compile(r'question type must be: "([^"]+)"')


def build_question(
    number: int,
    question_type: QuestionType,
    cls: type[Question] = Question,
    **overrides: Any,
) -> Question:
    """Build a valid question of the given type."""
    data: dict[str, Any] = {
        "question_number": number,
        "question_type": question_type,
        "question_text": f"Question {number} about the passage?",
        "hint": "Look at the second paragraph.",
        "rationale": "The passage states this directly.",
        "relevant_article_snippet": "Early farmers selected seeds",
    }

    if question_type == QuestionType.INSERT_TEXT:
        data["paragraph_for_insertion"] = (
            "[A] Early farmers selected seeds. [B] This changed the plants. "
            "[C] Wild wheat scatters its seeds. [D]"
        )
        data["sentence_to_insert"] = "The change took many generations."
        data["choices"] = [
            Choice(text=marker, is_correct=(i == 1))
            for i, marker in enumerate(["[A]", "[B]", "[C]", "[D]"])
        ]
    elif question_type == QuestionType.PROSE_SUMMARY:
        data["choices"] = [
            Choice(text=f"Summary statement {i}", is_correct=(i in PROSE_SUMMARY_CORRECT))
            for i in range(6)
        ]
    else:
        correct = number % 4
        data["choices"] = [
            Choice(text=f"Option {i}", is_correct=(i == correct)) for i in range(4)
        ]

    data.update(overrides)
    return cls(**data)


class FakeStructuredLLM:
    """
    Stand-in for a chat model with structured output.

    Question requests are answered from the number and type in the prompt.
    Optional per-number delays scramble completion order, and failing
    numbers raise instead of answering.
    """

    def __init__(
        self,
        title: str = "Plant Domestication",
        delays: dict[int, float] | None = None,
        fail_numbers: set[int] | None = None,
        fail_metadata: bool = False,
        echo_number: int | None = None,
    ):
        self.title = title
        self.delays = delays or {}
        self.fail_numbers = fail_numbers or set()
        self.fail_metadata = fail_metadata
        self.echo_number = echo_number
        self.calls: list[tuple[str, str]] = []
        self.completed: list[int] = []

    def with_structured_output(self, schema):
        return _FakeRunnable(self, schema)


class _FakeRunnable:
    def __init__(self, llm: FakeStructuredLLM, schema):
        self.llm = llm
        self.schema = schema

    async def ainvoke(self, messages):
        prompt = messages[-1].content
        self.llm.calls.append((self.schema.__name__, prompt))

        if self.schema is QuizMetadataOutput:
            if self.llm.fail_metadata:
                raise RuntimeError("metadata service unavailable")
            return QuizMetadataOutput(
                title=self.llm.title,
                summary_introductory_sentence="The passage discusses plant domestication.",
            )

        number = int(_NUMBER_RE.search(prompt).group(1))
        question_type = QuestionType(_TYPE_RE.search(prompt).group(1))
        await asyncio.sleep(self.llm.delays.get(number, 0))
        if number in self.llm.fail_numbers:
            raise RuntimeError(f"service error for question {number}")
        self.llm.completed.append(number)
        echoed = self.llm.echo_number if self.llm.echo_number is not None else number
        return build_question(echoed, question_type, cls=QuestionOutput)


@pytest.fixture
def sample_article() -> str:
    """A short reading passage."""
    return SAMPLE_ARTICLE


@pytest.fixture
def make_question():
    """Factory for valid questions of any type."""
    return build_question


@pytest.fixture
def fake_llm() -> FakeStructuredLLM:
    """A fake chat model that answers every request."""
    return FakeStructuredLLM()


@pytest.fixture
def fake_llm_class() -> type[FakeStructuredLLM]:
    """The fake chat model class, for tests that need custom behaviour."""
    return FakeStructuredLLM


@pytest.fixture
def app_settings() -> Settings:
    """Settings that do not depend on the environment."""
    return Settings(
        AWS_ACCESS_KEY_ID="test-key",
        AWS_SECRET_ACCESS_KEY="test-secret",
        AWS_DEFAULT_REGION="us-east-1",
        REQUEST_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def sample_quiz() -> Quiz:
    """A complete quiz following the default question plan."""
    return Quiz(
        title="Plant Domestication",
        summary_introductory_sentence="The passage discusses plant domestication.",
        questions=[
            build_question(number, question_type)
            for number, question_type in DEFAULT_QUESTION_PLAN.items()
        ],
    )


@pytest.fixture
def correct_answers(sample_quiz: Quiz) -> list[list[int]]:
    """The fully correct answer sheet for sample_quiz."""
    return [sorted(q.correct_choice_indices) for q in sample_quiz.questions]


class FakeClock:
    """Clock that advances one minute per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    """A deterministic, advancing clock."""
    return FakeClock()


@pytest.fixture
def history_store(clock: FakeClock) -> HistoryStore:
    """A history store backed by memory."""
    return HistoryStore(InMemoryStorage(), clock=clock)
