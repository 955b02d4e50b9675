"""Pydantic models for quiz data structures."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

INSERTION_MARKERS = ("[A]", "[B]", "[C]", "[D]")

PROSE_SUMMARY_CHOICES = 6
PROSE_SUMMARY_CORRECT = 3


class QuestionType(str, Enum):
    """TOEFL reading question types."""

    FACTUAL_INFO = "Factual Information"
    VOCABULARY = "Vocabulary-in-Context"
    INFERENCE = "Inference"
    SENTENCE_SIMPLIFICATION = "Sentence Simplification"
    NEGATIVE_FACTUAL_INFO = "Negative Factual Information"
    INSERT_TEXT = "Insert Text"
    PROSE_SUMMARY = "Prose Summary"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Choice(CamelModel):
    """A single answer choice."""

    text: str = Field(..., description="The choice text")
    is_correct: bool = Field(..., description="Whether this choice is correct")


class Question(CamelModel):
    """A single TOEFL-style reading question."""

    question_number: int = Field(..., description="1-based position in the quiz")
    question_type: QuestionType = Field(..., description="The TOEFL question type")
    question_text: str = Field(..., min_length=1, description="The question text")
    choices: list[Choice] = Field(..., description="Ordered answer choices")
    hint: str = Field(
        ...,
        description="A subtle hint to help the user find the answer.",
    )
    rationale: str = Field(
        ...,
        description=(
            "A detailed explanation of why the correct answer is correct "
            "and others are incorrect."
        ),
    )
    relevant_article_snippet: str = Field(
        ...,
        description=(
            "A direct quote from the article that contains the answer "
            "or the strongest clues for it."
        ),
    )
    highlighted_text: str | None = Field(
        None,
        description=(
            "The specific word or sentence from the article this question refers to "
            "(for Vocabulary or Sentence Simplification types)."
        ),
    )
    paragraph_for_insertion: str | None = Field(
        None,
        description="The paragraph with [A], [B], [C], [D] markers for the Insert Text question.",
    )
    sentence_to_insert: str | None = Field(
        None,
        description="The sentence to be inserted for the Insert Text question.",
    )

    @field_validator(
        "highlighted_text", "paragraph_for_insertion", "sentence_to_insert", mode="before"
    )
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty optional strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_type_constraints(self) -> "Question":
        """Enforce the per-type choice and insertion rules."""
        correct = len(self.correct_choice_indices)
        total = len(self.choices)

        if self.question_type == QuestionType.INSERT_TEXT:
            if self.paragraph_for_insertion is None or self.sentence_to_insert is None:
                raise ValueError(
                    "Insert Text questions need paragraphForInsertion and sentenceToInsert"
                )
            check_insertion_markers(self.paragraph_for_insertion)
            if total != len(INSERTION_MARKERS) or correct != 1:
                raise ValueError(
                    "Insert Text questions need one choice per marker with exactly 1 correct"
                )
            return self

        if self.paragraph_for_insertion is not None or self.sentence_to_insert is not None:
            raise ValueError(
                f"{self.question_type.value} questions cannot carry insertion fields"
            )

        if self.question_type == QuestionType.PROSE_SUMMARY:
            if total != PROSE_SUMMARY_CHOICES or correct != PROSE_SUMMARY_CORRECT:
                raise ValueError(
                    "Prose Summary questions need 6 choices with exactly 3 correct"
                )
        elif total < 2 or correct != 1:
            raise ValueError(
                f"{self.question_type.value} questions need at least 2 choices "
                "with exactly 1 correct"
            )
        return self

    @property
    def correct_choice_indices(self) -> set[int]:
        """Indices of the choices marked correct."""
        return {i for i, choice in enumerate(self.choices) if choice.is_correct}


def check_insertion_markers(paragraph: str) -> None:
    """
    Check that a paragraph carries [A]..[D] exactly once each, in order.

    Args:
        paragraph: Paragraph text with insertion markers

    Raises:
        ValueError: If a marker is missing, repeated or out of order
    """
    positions = []
    for marker in INSERTION_MARKERS:
        count = paragraph.count(marker)
        if count != 1:
            raise ValueError(f"Marker {marker} must appear exactly once, found {count}")
        positions.append(paragraph.index(marker))
    if positions != sorted(positions):
        raise ValueError("Insertion markers must appear in order [A], [B], [C], [D]")


class QuizMetadata(CamelModel):
    """Quiz-level metadata derived from the article."""

    title: str = Field(
        ...,
        min_length=1,
        description="A concise title for the quiz, derived from the article's main topic.",
    )
    summary_introductory_sentence: str = Field(
        ...,
        min_length=1,
        description="The introductory sentence for the final Prose Summary question.",
    )


class Quiz(CamelModel):
    """A complete quiz: metadata plus questions ordered by number."""

    title: str = Field(..., min_length=1, description="Quiz title")
    summary_introductory_sentence: str = Field(
        ...,
        description="Introductory sentence shown with the Prose Summary question",
    )
    questions: list[Question] = Field(..., description="Questions ordered 1..N")

    @field_validator("questions")
    @classmethod
    def validate_numbering(cls, v: list[Question]) -> list[Question]:
        """Ensure questions are numbered 1..N with no gaps or duplicates."""
        numbers = [q.question_number for q in v]
        if numbers != list(range(1, len(v) + 1)):
            raise ValueError(f"Questions must be numbered 1..{len(v)} in order, got {numbers}")
        return v

    @property
    def total_questions(self) -> int:
        """Get the number of questions in the quiz."""
        return len(self.questions)

    def get_questions_by_type(self, question_type: QuestionType) -> list[Question]:
        """Get all questions of a specific type."""
        return [q for q in self.questions if q.question_type == question_type]


class GenerationProgress(BaseModel):
    """A single progress report emitted during quiz generation."""

    stage: str
    percentage: float = Field(..., ge=0.0, le=100.0)


# Structured output models for LLM responses


class QuizMetadataOutput(QuizMetadata):
    """Metadata structure from the Metadata Generator."""


class QuestionOutput(Question):
    """Single question structure from the Question Generator."""
