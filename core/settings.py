from functools import lru_cache
from typing import List, Literal

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env.docker",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=True)


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="medassist")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD", "postgres"),
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "medassist"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class CompletionSettings(CustomSettings):
    """Configuration for the hosted chat-completion endpoint (Groq).

    Set via env vars:
    - GROQ_API_KEY
    - GROQ_BASE_URL
    - COMPLETION_MODEL
    - COMPLETION_TEMPERATURE
    - COMPLETION_MAX_TOKENS
    - COMPLETION_TOP_P
    """

    GROQ_API_KEY: SecretStr = Field(default="")
    GROQ_BASE_URL: str = Field(default="https://api.groq.com/openai/v1")
    COMPLETION_MODEL: str = Field(default="llama-3.3-70b-versatile")
    COMPLETION_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    COMPLETION_MAX_TOKENS: int = Field(default=1024, ge=1)
    COMPLETION_TOP_P: float = Field(default=1.0, gt=0.0, le=1.0)


class ChatSettings(CustomSettings):
    """Conversation windowing and language options.

    Set via env vars (optional):
    - CHAT_HISTORY_WINDOW
    - CHAT_DEFAULT_LANGUAGE
    - CHAT_SUPPORTED_LANGUAGES
    """

    CHAT_HISTORY_WINDOW: int = Field(default=10, ge=0)
    CHAT_DEFAULT_LANGUAGE: str = Field(default="English")
    CHAT_SUPPORTED_LANGUAGES: List[str] = Field(
        default_factory=lambda: ["English", "Hindi", "Kannada"]
    )


class UiSettings(CustomSettings):
    """Configuration for Streamlit UI to reach API endpoints.

    Set via env vars:
    - API_BASE_URL
    - ENDPOINT_CHAT_MESSAGE
    - ENDPOINT_CHAT_HISTORY
    - UI_USER_ID
    """

    API_BASE_URL: str = Field(default="http://localhost:8000")
    ENDPOINT_CHAT_MESSAGE: str = Field(default="/api/chat/message")
    ENDPOINT_CHAT_HISTORY: str = Field(default="/api/chat/history")
    UI_USER_ID: str = Field(default="demo-user")


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    COMPLETION: CompletionSettings = Field(default_factory=CompletionSettings)
    CHAT: ChatSettings = Field(default_factory=ChatSettings)
    UI: UiSettings = Field(default_factory=UiSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
