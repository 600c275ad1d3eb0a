"""
Shared configuration management for the ChatKit Token Service.
"""

from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias="CHATKIT_ENV")
    log_level: str = Field(default="info", validation_alias="CHATKIT_LOG_LEVEL")

    # Upstream provider
    openai_api_key: SecretStr = Field(default=SecretStr(""), validation_alias="OPENAI_API_KEY")
    openai_api_base: str = Field(default="https://api.openai.com/v1", validation_alias="CHATKIT_OPENAI_API_BASE")
    realtime_model: str = Field(default="gpt-4o-realtime-preview-2024-12-17", validation_alias="CHATKIT_REALTIME_MODEL")
    realtime_voice: str = Field(default="verse", validation_alias="CHATKIT_REALTIME_VOICE")
    upstream_timeout_seconds: float = Field(default=10.0, validation_alias="CHATKIT_UPSTREAM_TIMEOUT_SECONDS")

    # CORS
    allowed_origins: str = Field(default="", validation_alias="ALLOWED_ORIGINS")

    # Rate limiting
    rate_limit_max_tokens: int = Field(default=10, validation_alias="CHATKIT_RATE_LIMIT_MAX_TOKENS")
    rate_limit_refill_rate: int = Field(default=1, validation_alias="CHATKIT_RATE_LIMIT_REFILL_RATE")
    rate_limit_refill_interval_ms: int = Field(default=1000, validation_alias="CHATKIT_RATE_LIMIT_REFILL_INTERVAL_MS")
    rate_limit_retention_ms: int = Field(default=3_600_000, validation_alias="CHATKIT_RATE_LIMIT_RETENTION_MS")
    rate_limit_sweep_interval_seconds: float = Field(default=300.0, validation_alias="CHATKIT_RATE_LIMIT_SWEEP_INTERVAL_SECONDS")

    # Observability
    metrics_enabled: bool = Field(default=False, validation_alias="CHATKIT_METRICS_ENABLED")
    metrics_port: int = Field(default=9090, validation_alias="CHATKIT_METRICS_PORT")
    enable_tracing: bool = Field(default=False, validation_alias="CHATKIT_ENABLE_TRACING")
    otel_exporter: str = Field(default="http://localhost:4317", validation_alias="CHATKIT_OTEL_EXPORTER")
    enable_console_tracing: bool = Field(default=False, validation_alias="CHATKIT_ENABLE_CONSOLE_TRACING")

    @property
    def allowed_origin_list(self) -> List[str]:
        """Parse the comma-separated origin allow-list."""
        if not self.allowed_origins:
            return []
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
