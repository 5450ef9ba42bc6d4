from __future__ import annotations

from functools import lru_cache

from pydantic import Field, HttpUrl, ValidationError, model_validator
from pydantic_settings import BaseSettings

from dify_mcp.errors import ConfigurationError


class Settings(BaseSettings):
    """Project-wide configuration loaded from environment variables (.env optional)."""

    # Remote chat API
    DIFY_API_KEY: str | None = Field(None, description="Bearer credential for the Dify API")
    DIFY_BASE_URL: HttpUrl = Field("https://api.dify.ai/v1", description="Base URL of the Dify API")
    REQUEST_TIMEOUT: float | None = Field(
        None,
        description="Timeout in seconds for remote calls; unset lets a call run to completion",
    )
    LEGACY_CHUNK_SPLITTING: bool = Field(
        False,
        description="Split each received chunk on its own instead of buffering partial lines",
    )

    # HTTP/SSE transport
    HOST: str = Field("0.0.0.0", description="Bind address for the SSE server")
    PORT: int = Field(3000, description="HTTP port for the SSE server")
    SSE_PATH: str = Field("/sse", description="Endpoint that opens the event stream")
    MESSAGES_PATH: str = Field("/messages", description="Endpoint that receives client messages")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Root log level for Loguru")
    LOG_DIR: str | None = Field(None, description="Directory for rotating log files; disabled when unset")

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _ensure_api_key_set(self):  # noqa: D401 – pydantic hook
        """Fail fast if the API credential is missing."""
        if not self.DIFY_API_KEY:
            raise ValueError("DIFY_API_KEY environment variable is required")
        return self

    @property
    def base_url(self) -> str:
        return str(self.DIFY_BASE_URL).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def load_settings() -> Settings:
    """Return the cached settings or raise :class:`ConfigurationError`."""
    try:
        return get_settings()
    except ValidationError as exc:
        messages = "; ".join(err.get("msg", "") for err in exc.errors())
        raise ConfigurationError(messages or str(exc)) from exc
