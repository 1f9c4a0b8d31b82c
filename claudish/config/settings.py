"""Gateway settings loaded from the environment with pydantic-settings."""

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    GEMINI_BASE_URL,
    GLM_BASE_URL,
    LOCAL_PROVIDER_URLS,
    OPENAI_BASE_URL,
)


__all__ = [
    "HTTPSettings",
    "LoggingSettings",
    "ProviderSettings",
    "QueueSettings",
    "ServerSettings",
    "Settings",
    "TranslationSettings",
]


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=False,
        description="Render log events as JSON lines",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        upper_v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


class HTTPSettings(BaseModel):
    """HTTP client configuration settings."""

    connect_timeout: float = Field(default=5.0, description="Connect timeout (s)")
    read_timeout: float = Field(
        default=240.0, description="Read timeout (s), long for streaming"
    )
    write_timeout: float = Field(default=30.0, description="Write timeout (s)")
    pool_timeout: float = Field(
        default=30.0, description="Wait for a free pooled connection (s)"
    )
    max_connections: int = Field(default=200, ge=1)
    max_keepalive_connections: int = Field(default=50, ge=0)
    verify_ssl: bool = Field(default=True)
    oauth_request_timeout: float = Field(
        default=30.0,
        description="Hard ceiling for OAuth-backed provider calls",
    )
    local_request_timeout: float = Field(
        default=600.0,
        description="Timeout for local model servers, which can be slow to load",
    )


class QueueSettings(BaseModel):
    """Per provider-class admission limits."""

    gemini_concurrency: int = Field(default=2, ge=1)
    gemini_min_interval: float = Field(default=0.5, ge=0.0)
    openrouter_concurrency: int = Field(default=4, ge=1)
    openrouter_min_interval: float = Field(default=0.0, ge=0.0)
    local_concurrency: int = Field(default=1, ge=1)
    acquire_timeout: float | None = Field(
        default=120.0,
        description="Seconds a request may wait for a slot (None waits forever)",
    )


class ProviderSettings(BaseModel):
    """API keys, base URLs and OAuth client settings per provider."""

    default_provider: str = Field(default="openrouter")

    openrouter_api_key: SecretStr | None = None
    openrouter_referer: str = "https://github.com/claudish/claudish"
    openrouter_title: str = "claudish"

    openai_api_key: SecretStr | None = None
    openai_base_url: str = OPENAI_BASE_URL
    openai_api_path: str = "/v1/chat/completions"

    gemini_api_key: SecretStr | None = None
    gemini_base_url: str = GEMINI_BASE_URL

    glm_api_key: SecretStr | None = None
    glm_base_url: str = GLM_BASE_URL

    minimax_api_key: SecretStr | None = None
    kimi_api_key: SecretStr | None = None
    zai_api_key: SecretStr | None = None
    anthropic_compat_base_urls: dict[str, str] = Field(
        default_factory=dict,
        description="Overrides for native Anthropic-compatible provider base URLs",
    )

    litellm_base_url: str | None = None
    litellm_api_key: SecretStr | None = None

    poe_api_key: SecretStr | None = None
    ollama_cloud_api_key: SecretStr | None = None

    local_base_urls: dict[str, str] = Field(
        default_factory=lambda: dict(LOCAL_PROVIDER_URLS)
    )
    local_api_key: SecretStr | None = None
    local_context_window: int | None = Field(
        default=None,
        gt=0,
        description="Fixed context window for local models; disables detection",
    )

    vertex_api_key: SecretStr | None = Field(
        default=None,
        description="Vertex express mode key; Gemini models only, skips OAuth",
    )
    vertex_project: str | None = None
    vertex_location: str = "us-central1"

    google_cloud_project: str | None = Field(
        default=None,
        description="Code Assist project id; resolved via loadCodeAssist when unset",
    )
    google_oauth_client_id: str | None = None
    google_oauth_client_secret: SecretStr | None = None
    google_oauth_refresh_token: SecretStr | None = None


class TranslationSettings(BaseModel):
    """How canonical requests are rewritten for non-Anthropic models."""

    summarize_tools: bool = Field(
        default=False,
        description="Cut tool descriptions to one sentence and drop schema "
        "descriptions, for models with small context windows",
    )
    filter_identity: bool = Field(
        default=True,
        description="Rewrite Claude identity statements in the system prompt",
    )


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8082


class Settings(BaseSettings):
    """Gateway configuration.

    Values come from environment variables (nested with ``__``, e.g.
    ``PROVIDERS__OPENROUTER_API_KEY``) and an optional ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    queues: QueueSettings = Field(default_factory=QueueSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    translation: TranslationSettings = Field(default_factory=TranslationSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
