"""Application settings and configuration."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file if present
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AWS CONFIG
    aws_api_key_id: str | None = Field(
        default=None,
        description="AWS API key ID",
        validation_alias="AWS_ACCESS_KEY_ID",
    )
    aws_api_key_secret: str | None = Field(
        default=None,
        description="AWS API key",
        validation_alias="AWS_SECRET_ACCESS_KEY",
    )
    aws_default_region: str = Field(
        default="us-east-1",
        description="AWS API region",
        validation_alias="AWS_DEFAULT_REGION",
    )

    # Model Configuration
    metadata_model_name: str = Field(
        default="anthropic.claude-3-5-haiku-20241022-v1:0",
        description="Model used for quiz title and summary sentence (AWS Bedrock model ID)",
        validation_alias="METADATA_MODEL_NAME",
    )
    question_model_name: str = Field(
        default="anthropic.claude-3-7-sonnet-20250219-v1:0",
        description="Model used for individual questions (AWS Bedrock model ID)",
        validation_alias="QUESTION_MODEL_NAME",
    )

    # Generation Settings
    metadata_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Temperature for metadata generation",
        validation_alias="METADATA_TEMPERATURE",
    )
    question_temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Temperature for question generation",
        validation_alias="QUESTION_TEMPERATURE",
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Upper bound for a single structured generation call",
        validation_alias="REQUEST_TIMEOUT_SECONDS",
    )

    # Storage Settings
    history_dir: str = Field(
        default=".quiz_history",
        description="Directory holding persisted quiz history",
        validation_alias="HISTORY_DIR",
    )

    # Output Settings
    default_output_path: str = Field(
        default="quiz",
        description="Default output file path",
        validation_alias="DEFAULT_OUTPUT",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for the CLI",
        validation_alias="LOG_LEVEL",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# This is loaded the first time and then cached for further use
@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings object with loaded configuration
    """
    return Settings()
