"""
Shared configuration management for the AI Workflow service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    project_name: str = Field(default="Heady AI Workflow Engine")
    api_version: str = Field(default="v1")

    # Cache
    cache_backend: str = Field(default="memory", description="memory, redis or none")
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_ttl_seconds: int = Field(default=3600, gt=0)
    cache_key_prompt_chars: int = Field(default=50, gt=0)

    # Ledger
    ledger_backend: str = Field(default="none", description="none, postgres or redis")
    postgres_dsn: str = Field(default="postgres://localhost:5432/workflow")
    ledger_ttl_seconds: int = Field(default=86400, gt=0)

    # Remote configuration
    gist_id: Optional[str] = Field(default=None)
    github_token: Optional[str] = Field(default=None)
    github_api_url: str = Field(default="https://api.github.com")
    config_name: str = Field(default="workflow")
    config_timeout_seconds: float = Field(default=10.0, gt=0)

    # Model runner
    default_model: str = Field(default="@cf/meta/llama-2-7b-chat-int8")
    embedding_model: str = Field(default="@cf/baai/bge-base-en-v1.5")
    ai_account_id: Optional[str] = Field(default=None)
    ai_api_token: Optional[str] = Field(default=None)
    ai_base_url: str = Field(default="https://api.cloudflare.com/client/v4")
    model_timeout_seconds: float = Field(default=30.0, gt=0)
    model_max_attempts: int = Field(default=1, ge=1)

    # Request boundary. The request timeout bounds cache read, config and
    # model; the cache write and ledger append each get their own bound.
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    cache_write_timeout_seconds: float = Field(default=5.0, gt=0)
    ledger_timeout_seconds: float = Field(default=5.0, gt=0)


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
