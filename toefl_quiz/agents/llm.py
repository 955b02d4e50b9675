"""Structured calls to the generative service."""

import asyncio
import logging
from typing import TypeVar

from langchain_aws import ChatBedrock
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from pydantic import BaseModel

from toefl_quiz.config.settings import Settings
from toefl_quiz.exceptions import GenerationServiceError
from toefl_quiz.models.quiz import QuestionType

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def get_chat_model(settings: Settings, model_name: str, temperature: float) -> BaseChatModel:
    """
    Build the Bedrock chat model used for structured generation.

    Args:
        settings: Application settings (credentials and region)
        model_name: Bedrock model ID
        temperature: Sampling temperature

    Returns:
        Configured chat model
    """
    credentials = {}
    if settings.aws_api_key_id and settings.aws_api_key_secret:
        credentials = {
            "aws_access_key_id": settings.aws_api_key_id,
            "aws_secret_access_key": settings.aws_api_key_secret,
        }
    return ChatBedrock(
        model=model_name,
        temperature=temperature,
        region_name=settings.aws_default_region,
        **credentials,
    )


async def invoke_structured(
    llm: BaseChatModel,
    schema: type[T],
    messages: list[BaseMessage],
    *,
    timeout: float | None = None,
    question_number: int | None = None,
    question_type: QuestionType | None = None,
) -> T:
    """
    Run one schema-constrained request and return the parsed result.

    Any failure, including output that does not satisfy ``schema``, is raised
    as GenerationServiceError. Cancellation is never converted.

    Args:
        llm: Chat model supporting structured output
        schema: Pydantic model the response must conform to
        messages: Prompt messages
        timeout: Seconds to wait before giving up, or None for no limit
        question_number: Question being generated, for error context
        question_type: Question type being generated, for error context

    Returns:
        Parsed instance of ``schema``
    """
    llm_with_structure = llm.with_structured_output(schema)

    try:
        result = await asyncio.wait_for(llm_with_structure.ainvoke(messages), timeout)
    except asyncio.TimeoutError as e:
        raise GenerationServiceError(
            f"request timed out after {timeout}s",
            question_number=question_number,
            question_type=question_type,
        ) from e
    except Exception as e:
        raise GenerationServiceError(
            f"{type(e).__name__}: {e}",
            question_number=question_number,
            question_type=question_type,
        ) from e

    if not isinstance(result, schema):
        raise GenerationServiceError(
            f"response did not match the {schema.__name__} schema",
            question_number=question_number,
            question_type=question_type,
        )

    logger.debug("Structured %s response received", schema.__name__)
    return result
