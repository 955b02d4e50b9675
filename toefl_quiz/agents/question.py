"""Question Generator Agent - Generates one TOEFL question per request."""

import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from toefl_quiz.agents.llm import get_chat_model, invoke_structured
from toefl_quiz.config.settings import Settings, get_settings
from toefl_quiz.exceptions import EmptyArticleError, GenerationServiceError
from toefl_quiz.models.quiz import Question, QuestionOutput, QuestionType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert TOEFL exam creator. Your task is to create a single TOEFL-style reading question based ONLY on the provided article.

Requirements:
- The question, choices, hint, and rationale must be in formal academic English, indistinguishable from official materials
- You MUST provide a 'relevantArticleSnippet', a direct quote from the article that contains the answer or the strongest clues
- Your output must be a single JSON object that strictly adheres to the provided schema"""

TYPE_INSTRUCTIONS = {
    QuestionType.INSERT_TEXT: (
        "- 'paragraphForInsertion' must contain exactly four markers: [A], [B], [C], and [D], "
        "each once and in that order.\n"
        "- 'sentenceToInsert' must contain the sentence to be inserted.\n"
        "- Provide exactly 4 choices, '[A]', '[B]', '[C]', '[D]', with exactly 1 correct."
    ),
    QuestionType.PROSE_SUMMARY: (
        "- Provide exactly 6 choices, 3 of which are correct summaries of the main ideas."
    ),
    QuestionType.VOCABULARY: (
        "- Put the word or phrase being tested in 'highlightedText'.\n"
        "- Provide 4 choices with exactly 1 correct."
    ),
    QuestionType.SENTENCE_SIMPLIFICATION: (
        "- Put the sentence being simplified in 'highlightedText'.\n"
        "- Provide 4 choices with exactly 1 correct."
    ),
}

DEFAULT_TYPE_INSTRUCTION = "- Provide 4 choices with exactly 1 correct."


def build_question_prompt(
    article: str, question_number: int, question_type: QuestionType
) -> str:
    """Build the user prompt for a single question request."""
    type_rules = TYPE_INSTRUCTIONS.get(question_type, DEFAULT_TYPE_INSTRUCTION)
    if question_type != QuestionType.INSERT_TEXT:
        type_rules += "\n- Leave 'paragraphForInsertion' and 'sentenceToInsert' null."

    return f"""Create question number {question_number}.
The question type must be: "{question_type.value}".
{type_rules}

ARTICLE:
---
{article}
---
"""


async def generate_question(
    article: str,
    question_number: int,
    question_type: QuestionType,
    *,
    llm: BaseChatModel | None = None,
    settings: Settings | None = None,
) -> Question:
    """
    Question Generator Agent: Generate a single question of a given type.

    The requested question number is authoritative and replaces whatever the
    service echoes back. A response of a different question type is rejected.

    Args:
        article: Source passage
        question_number: 1-based number the question will carry
        question_type: Required TOEFL question type
        llm: Chat model to use, built from settings when omitted
        settings: Application settings, loaded from the environment when omitted

    Returns:
        Validated Question
    """
    if not article or not article.strip():
        raise EmptyArticleError()

    settings = settings or get_settings()
    if llm is None:
        llm = get_chat_model(
            settings, settings.question_model_name, settings.question_temperature
        )

    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=build_question_prompt(article, question_number, question_type)),
    ]

    output = await invoke_structured(
        llm,
        QuestionOutput,
        messages,
        timeout=settings.request_timeout_seconds,
        question_number=question_number,
        question_type=question_type,
    )

    if output.question_type != question_type:
        raise GenerationServiceError(
            f"service returned a {output.question_type.value} question",
            question_number=question_number,
            question_type=question_type,
        )

    data = output.model_dump()
    data["question_number"] = question_number
    logger.debug("Generated question %d (%s)", question_number, question_type.value)
    return Question.model_validate(data)
