from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=True, alias="DEBUG")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Judge endpoint (OpenRouter, OpenAI-compatible)
    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    judge_base_url: str = Field(
        default="https://openrouter.ai/api/v1", alias="JUDGE_BASE_URL"
    )
    judge_model: str = Field(
        default="anthropic/claude-3-haiku-20240307", alias="JUDGE_MODEL"
    )
    judge_max_tokens: int = Field(default=1500, alias="JUDGE_MAX_TOKENS")
    judge_temperature: float = Field(default=0.7, alias="JUDGE_TEMPERATURE")
    judge_timeout: float = Field(default=30.0, alias="JUDGE_TIMEOUT")
    # 1 = single attempt, no retry
    judge_max_attempts: int = Field(default=1, ge=1, alias="JUDGE_MAX_ATTEMPTS")

    app_url: str = Field(default="https://styleum.app", alias="APP_URL")
    app_name: str = Field(default="Styleum", alias="APP_NAME")

    # Generation
    default_target_count: int = Field(default=6, ge=1, alias="DEFAULT_TARGET_COUNT")


@lru_cache
def get_settings() -> Settings:
    return Settings()
