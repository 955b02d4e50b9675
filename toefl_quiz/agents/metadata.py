"""Metadata Generator Agent - Derives the quiz title and summary sentence."""

import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from toefl_quiz.agents.llm import get_chat_model, invoke_structured
from toefl_quiz.config.settings import Settings, get_settings
from toefl_quiz.exceptions import EmptyArticleError
from toefl_quiz.models.quiz import QuizMetadata, QuizMetadataOutput

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert TOEFL exam creator preparing a reading quiz.

Derive everything strictly from the provided article. Do not add outside facts.
Your output must be a single JSON object that strictly adheres to the provided schema."""


def build_metadata_prompt(article: str) -> str:
    """Build the user prompt for the metadata request."""
    return f"""Based on the provided article, generate a concise title for a quiz and an introductory sentence for a prose summary question.
The title should reflect the article's main topic.
The introductory sentence should set up the main idea summary task.

ARTICLE:
---
{article}
---
"""


async def generate_quiz_metadata(
    article: str,
    *,
    llm: BaseChatModel | None = None,
    settings: Settings | None = None,
) -> QuizMetadata:
    """
    Metadata Generator Agent: Create the quiz title and summary sentence.

    Issues exactly one structured request. No retries are attempted; any
    failure propagates as GenerationServiceError.

    Args:
        article: Source passage
        llm: Chat model to use, built from settings when omitted
        settings: Application settings, loaded from the environment when omitted

    Returns:
        QuizMetadata derived from the article
    """
    if not article or not article.strip():
        raise EmptyArticleError()

    settings = settings or get_settings()
    if llm is None:
        llm = get_chat_model(
            settings, settings.metadata_model_name, settings.metadata_temperature
        )

    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=build_metadata_prompt(article)),
    ]

    output = await invoke_structured(
        llm,
        QuizMetadataOutput,
        messages,
        timeout=settings.request_timeout_seconds,
    )
    logger.info("Generated quiz metadata: %r", output.title)
    return QuizMetadata.model_validate(output.model_dump())
