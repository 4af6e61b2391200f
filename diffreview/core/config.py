from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: str = "openai"
    llm_endpoint: str | None = None
    llm_api_key: SecretStr | None = None
    llm_model: str | None = None

    # LLM Settings
    llm_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    review_max_tokens: int = Field(default=1000, gt=0)
    summary_max_tokens: int = Field(default=1500, gt=0)

    @property
    def api_key_value(self) -> str | None:
        """Return the plain API key, if configured."""
        if self.llm_api_key is None:
            return None
        return self.llm_api_key.get_secret_value()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
