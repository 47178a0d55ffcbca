"""Application settings, read from the environment and an optional .env file."""
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = str(Path.home() / ".see_tutor" / "tutor.db")
DEFAULT_LOG_FILE = str(Path.home() / ".see_tutor" / "tutor.log")


class Settings(BaseSettings):
    """Tutor configuration. Every field can be set as SEE_TUTOR_<NAME>."""

    model_config = SettingsConfigDict(
        env_prefix="SEE_TUTOR_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # LLM provider
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SEE_TUTOR_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    OPENAI_BASE_URL: Optional[str] = None
    SCENARIO_MODEL: str = "gpt-4o"
    EVALUATION_MODEL: str = "gpt-4o"
    MOCK_EXAM_MODEL: str = "gpt-4o"
    REFERENCE_MODEL: str = "gpt-4o-mini"

    # Generation parameters
    SCENARIO_TEMPERATURE: float = 1.0
    SCENARIO_MAX_TOKENS: int = 2048
    EVALUATION_TEMPERATURE: float = 0.2
    EVALUATION_MAX_TOKENS: int = 4096
    MOCK_EXAM_TEMPERATURE: float = 0.8
    MOCK_EXAM_MAX_TOKENS: int = 8192

    # Timeouts (seconds). REQUEST_TIMEOUT bounds one attempt; retries back off
    # between RETRY_WAIT_MIN and RETRY_WAIT_MAX.
    REQUEST_TIMEOUT: float = 60.0
    MAX_RETRIES: int = 3
    RETRY_WAIT_MIN: float = 2.0
    RETRY_WAIT_MAX: float = 10.0

    # Storage
    DB_PATH: str = DEFAULT_DB_PATH

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = DEFAULT_LOG_FILE
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

    @property
    def call_timeout(self) -> float:
        """Upper bound for one collaborator call: every attempt plus the waits between them."""
        attempts = max(1, self.MAX_RETRIES)
        return attempts * self.REQUEST_TIMEOUT + (attempts - 1) * self.RETRY_WAIT_MAX


settings = Settings()
