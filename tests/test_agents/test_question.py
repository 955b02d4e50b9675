"""Tests for the Question and Metadata Generator Agents."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from toefl_quiz.agents.metadata import build_metadata_prompt, generate_quiz_metadata
from toefl_quiz.agents.question import build_question_prompt, generate_question
from toefl_quiz.exceptions import EmptyArticleError, GenerationServiceError
from toefl_quiz.models.quiz import Question, QuestionOutput, QuestionType, QuizMetadata


def structured_llm(ainvoke: AsyncMock) -> MagicMock:
    """Wrap an ainvoke mock in a chat-model-shaped mock."""
    llm = MagicMock()
    llm.with_structured_output.return_value.ainvoke = ainvoke
    return llm


class TestBuildQuestionPrompt:
    """Test question prompt construction."""

    def test_includes_number_type_and_article(self, sample_article):
        """Test that the prompt names the number, the type and the article."""
        prompt = build_question_prompt(sample_article, 5, QuestionType.SENTENCE_SIMPLIFICATION)

        assert "question number 5" in prompt
        assert '"Sentence Simplification"' in prompt
        assert sample_article in prompt

    def test_insert_text_mentions_markers(self, sample_article):
        """Test that insert text prompts describe the markers."""
        prompt = build_question_prompt(sample_article, 9, QuestionType.INSERT_TEXT)

        assert "[A], [B], [C], and [D]" in prompt
        assert "sentenceToInsert" in prompt

    def test_prose_summary_asks_for_six_choices(self, sample_article):
        """Test that prose summary prompts ask for six choices."""
        prompt = build_question_prompt(sample_article, 12, QuestionType.PROSE_SUMMARY)

        assert "exactly 6 choices" in prompt
        assert "3 of which are correct" in prompt

    def test_other_types_leave_insertion_fields_null(self, sample_article):
        """Test that other types are told to leave insertion fields null."""
        prompt = build_question_prompt(sample_article, 1, QuestionType.FACTUAL_INFO)

        assert "Leave 'paragraphForInsertion' and 'sentenceToInsert' null" in prompt


class TestGenerateQuestion:
    """Test single question generation."""

    @pytest.mark.asyncio
    async def test_returns_validated_question(self, sample_article, fake_llm, app_settings):
        """Test generating a valid question."""
        question = await generate_question(
            sample_article, 9, QuestionType.INSERT_TEXT, llm=fake_llm, settings=app_settings
        )

        assert type(question) is Question
        assert question.question_number == 9
        assert question.question_type == QuestionType.INSERT_TEXT
        assert question.sentence_to_insert is not None

    @pytest.mark.asyncio
    async def test_requested_number_overrides_echoed_number(
        self, sample_article, fake_llm_class, app_settings
    ):
        """Test that the requested number replaces the returned one."""
        llm = fake_llm_class(echo_number=42)

        question = await generate_question(
            sample_article, 4, QuestionType.FACTUAL_INFO, llm=llm, settings=app_settings
        )

        assert question.question_number == 4

    @pytest.mark.asyncio
    async def test_uses_question_schema(self, sample_article, make_question, app_settings):
        """Test that the question schema is requested."""
        output = make_question(2, QuestionType.VOCABULARY, cls=QuestionOutput)
        llm = structured_llm(AsyncMock(return_value=output))

        await generate_question(
            sample_article, 2, QuestionType.VOCABULARY, llm=llm, settings=app_settings
        )

        llm.with_structured_output.assert_called_once_with(QuestionOutput)

    @pytest.mark.asyncio
    async def test_rejects_wrong_question_type(self, sample_article, make_question, app_settings):
        """Test that a question of another type is rejected."""
        output = make_question(2, QuestionType.INFERENCE, cls=QuestionOutput)
        llm = structured_llm(AsyncMock(return_value=output))

        with pytest.raises(GenerationServiceError) as exc_info:
            await generate_question(
                sample_article, 2, QuestionType.VOCABULARY, llm=llm, settings=app_settings
            )

        assert exc_info.value.question_number == 2
        assert exc_info.value.question_type == QuestionType.VOCABULARY

    @pytest.mark.asyncio
    async def test_wraps_service_errors_with_context(
        self, sample_article, fake_llm_class, app_settings
    ):
        """Test that service errors carry the question number and type."""
        llm = fake_llm_class(fail_numbers={7})

        with pytest.raises(GenerationServiceError) as exc_info:
            await generate_question(
                sample_article, 7, QuestionType.VOCABULARY, llm=llm, settings=app_settings
            )

        assert exc_info.value.question_number == 7
        assert "service error for question 7" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_non_conforming_output_fails(self, sample_article, app_settings):
        """Test that output violating the type rules fails."""
        with pytest.raises(ValidationError) as parse_error:
            QuestionOutput.model_validate({"questionNumber": 1})
        llm = structured_llm(AsyncMock(side_effect=parse_error.value))

        with pytest.raises(GenerationServiceError, match="ValidationError"):
            await generate_question(
                sample_article, 1, QuestionType.FACTUAL_INFO, llm=llm, settings=app_settings
            )

    @pytest.mark.asyncio
    async def test_missing_output_fails(self, sample_article, app_settings):
        """Test that an empty response fails."""
        llm = structured_llm(AsyncMock(return_value=None))

        with pytest.raises(GenerationServiceError, match="did not match"):
            await generate_question(
                sample_article, 1, QuestionType.FACTUAL_INFO, llm=llm, settings=app_settings
            )

    @pytest.mark.asyncio
    async def test_rejects_blank_article(self, fake_llm, app_settings):
        """Test that a blank article is rejected before any request."""
        with pytest.raises(EmptyArticleError):
            await generate_question(
                "   \n", 1, QuestionType.FACTUAL_INFO, llm=fake_llm, settings=app_settings
            )

        assert fake_llm.calls == []


class TestGenerateQuizMetadata:
    """Test metadata generation."""

    def test_prompt_includes_article(self, sample_article):
        """Test that the metadata prompt includes the article."""
        assert sample_article in build_metadata_prompt(sample_article)

    @pytest.mark.asyncio
    async def test_returns_metadata(self, sample_article, fake_llm, app_settings):
        """Test generating quiz metadata."""
        metadata = await generate_quiz_metadata(sample_article, llm=fake_llm, settings=app_settings)

        assert type(metadata) is QuizMetadata
        assert metadata.title == "Plant Domestication"
        assert len(fake_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, sample_article, fake_llm_class, app_settings):
        """Test that a failed metadata request is made only once."""
        llm = fake_llm_class(fail_metadata=True)

        with pytest.raises(GenerationServiceError, match="metadata service unavailable"):
            await generate_quiz_metadata(sample_article, llm=llm, settings=app_settings)

        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_rejects_empty_article(self, fake_llm, app_settings):
        """Test that an empty article is rejected before any request."""
        with pytest.raises(EmptyArticleError):
            await generate_quiz_metadata("", llm=fake_llm, settings=app_settings)
