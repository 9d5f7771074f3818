"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_TUTOR_PROMPT = """You are EduBot, an enthusiastic and friendly AI tutor for students in grades 5-12!

Your teaching style:
- Use simple, relatable examples from everyday life (sports, games, movies, social media)
- Break complex topics into bite-sized, easy-to-digest pieces
- Add fun facts, surprising connections, or "did you know?" moments
- Relate concepts to things students care about
- Use analogies and metaphors that resonate with this age group
- Encourage critical thinking with thought-provoking questions
- Celebrate their progress and curiosity

For explanations:
- Start with the "big picture" before diving into details
- Use step-by-step breakdowns for complex problems
- Include visual descriptions when helpful (e.g., "imagine a..." or "picture this...")
- Give real-world applications so they see why it matters

Tone:
- Enthusiastic but not over-the-top
- Patient and never condescending
- Encouraging and positive

If stuck: Be honest, suggest learning together, or break it down differently."""


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Client side: where the chat front end sends its requests
    gateway_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("http://localhost:8000"),
        validation_alias=AliasChoices("EDUBOT_GATEWAY_URL", "gateway_url"),
    )
    chat_path: str = Field(
        default="/api/chat",
        validation_alias=AliasChoices("EDUBOT_CHAT_PATH", "chat_path"),
    )
    image_path: str = Field(
        default="/api/generate-topic-image",
        validation_alias=AliasChoices("EDUBOT_IMAGE_PATH", "image_path"),
    )
    gateway_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("EDUBOT_GATEWAY_KEY", "gateway_api_key"),
    )
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices("EDUBOT_TIMEOUT", "request_timeout"),
        ge=1,
    )
    image_word_threshold: int = Field(
        default=150,
        ge=0,
        validation_alias=AliasChoices(
            "EDUBOT_IMAGE_WORD_THRESHOLD",
            "image_word_threshold",
        ),
    )

    # Relay side: the upstream model gateway the relay forwards to
    upstream_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://ai.gateway.lovable.dev/v1"),
        validation_alias=AliasChoices("UPSTREAM_BASE_URL", "upstream_base_url"),
    )
    upstream_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(
            "UPSTREAM_API_KEY",
            "LOVABLE_API_KEY",
            "upstream_api_key",
        ),
    )
    upstream_model: str = Field(
        default="google/gemini-2.5-flash",
        validation_alias=AliasChoices("UPSTREAM_MODEL", "upstream_model"),
    )
    tutor_system_prompt: str = Field(
        default=DEFAULT_TUTOR_PROMPT,
        validation_alias=AliasChoices("TUTOR_SYSTEM_PROMPT", "tutor_system_prompt"),
    )

    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices(
            "LOGGING_SETTINGS_PATH",
            "logging_settings_path",
        ),
    )

    @property
    def chat_url(self) -> str:
        return _join_url(self.gateway_url, self.chat_path)

    @property
    def image_url(self) -> str:
        return _join_url(self.gateway_url, self.image_path)


def _join_url(base: AnyHttpUrl, path: str) -> str:
    return f"{str(base).rstrip('/')}/{path.lstrip('/')}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["DEFAULT_TUTOR_PROMPT", "Settings", "get_settings"]
