"""Configuration models for Thicket conversations and the HTTP server."""

from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant inside a threaded conversation. Respond to the "
    "latest user message. Only use the conversation path provided; do not assume "
    "context from sibling branches."
)

DEFAULT_FALLBACK_MESSAGE = "I'm sorry, I was unable to generate a response."

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


class ProviderConfig(BaseModel):
    """Configuration for the chat-completion provider call."""

    model: str = Field(
        default="gpt-4o-mini",
        description="Model string in litellm format (e.g. ``gpt-4o-mini``, ``anthropic/claude-haiku-3``).",
    )

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait for a completion before treating the call as failed.",
    )

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    """Fixed instruction prepended to every context path."""

    fallback_message: str = Field(
        default=DEFAULT_FALLBACK_MESSAGE,
        min_length=1,
        description="Assistant reply stored when the provider fails or returns no text.",
    )


class ServerConfig(BaseModel):
    """Configuration for the FastAPI application."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @field_validator("cors_origins")
    @classmethod
    def normalize_origins(cls, origins: list[str]) -> list[str]:
        cleaned = [origin.strip().rstrip("/") for origin in origins]
        return [origin for origin in cleaned if origin]


class ThicketConfig(BaseModel):
    """
    Top-level configuration for a Thicket service.

    All sub-configs have sensible defaults and can be overridden individually.

    Example::

        config = ThicketConfig(
            provider=ProviderConfig(model="anthropic/claude-haiku-3", temperature=0.2),
            server=ServerConfig(port=9000),
        )
    """

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def default(cls) -> ThicketConfig:
        """Return a config instance with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> ThicketConfig:
        """
        Build a config from environment variables.

        Recognised variables: ``OPENAI_MODEL``, ``MODEL_TEMPERATURE``, ``HOST``,
        ``PORT`` and ``CLIENT_ORIGIN`` (comma-separated). Unset variables keep
        their defaults. A ``.env`` file in the working directory is loaded first
        unless ``dotenv`` is False; values already in the environment win.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        provider: dict[str, object] = {}
        if model := os.getenv("OPENAI_MODEL"):
            provider["model"] = model
        if temperature := os.getenv("MODEL_TEMPERATURE"):
            provider["temperature"] = float(temperature)

        server: dict[str, object] = {}
        if host := os.getenv("HOST"):
            server["host"] = host
        if port := os.getenv("PORT"):
            server["port"] = int(port)
        if origins := os.getenv("CLIENT_ORIGIN"):
            server["cors_origins"] = origins.split(",")

        return cls(provider=ProviderConfig(**provider), server=ServerConfig(**server))
