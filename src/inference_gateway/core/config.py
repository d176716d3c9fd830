"""Centralized configuration management for the Inference Gateway.

This module provides a single source of truth for all configuration values,
using pydantic-settings for environment variable loading and validation.

Design Principles:
    - Environment Variables: All settings can be overridden via environment variables
    - Sensible Defaults: All settings have production-ready defaults
    - Validation: Pydantic validates all values at load time
    - Singleton Pattern: Cached settings instance via lru_cache

Configuration Sections:
    - APIConfig: FastAPI server configuration
    - AuthConfig: Server-side bearer credential
    - RateLimitConfig: Fixed-window quota per client
    - StoreConfig: Shared key-value store backing the rate limiter
    - InferenceConfig: Remote inference service connection
    - ContextConfig: Conversation history character budgets

Environment Variable Prefixes:
    - API_*: FastAPI server settings
    - AUTH_*: Authentication settings
    - RATE_LIMIT_*: Rate limiter settings
    - STORE_*: Key-value store settings
    - INFERENCE_*: Inference service settings
    - CONTEXT_*: Context window settings

Usage:
    from inference_gateway.core.config import settings

    max_requests = settings.rate_limit.max_requests
    budget = settings.context.default_char_budget
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, NonNegativeInt, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """FastAPI server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8000, ge=1, le=65535, description="API server port")
    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(
        default="info", description="Logging level"
    )
    title: str = Field(default="Inference Gateway API", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: str = Field(default="*", description="Comma-separated allowed CORS origins")
    logs_dir: Path | None = Field(
        default=None, description="Directory for requests.jsonl (defaults to <project>/logs)"
    )
    protected_prefix: str = Field(
        default="/api/v1", description="Path prefix guarded by authentication and rate limiting"
    )


class AuthConfig(BaseSettings):
    """Server-side credential used to validate bearer tokens.

    Attributes:
        api_key: Expected bearer token. Takes precedence over api_key_file.
        api_key_file: Path to a file holding the expected token (e.g. a
            mounted secret). Read on each lookup so rotations apply without
            restart.

    Note:
        When neither is set the gateway answers protected routes with a
        500 server configuration error instead of admitting traffic.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: SecretStr | None = Field(default=None, description="Expected bearer token")
    api_key_file: Path | None = Field(default=None, description="File containing the bearer token")


class RateLimitConfig(BaseSettings):
    """Fixed-window rate limit configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        extra="ignore",
    )

    max_requests: int = Field(default=100, ge=1, description="Requests admitted per window")
    window_seconds: int = Field(default=3600, ge=1, description="Window length (seconds)")
    key_prefix: str = Field(default="rate_limit", description="Store key prefix")


class StoreConfig(BaseSettings):
    """Key-value store configuration.

    Attributes:
        backend: "memory" for a per-process store (tests, single instance)
            or "redis" for a store shared across gateway instances.
        redis_url: Connection URL used when backend is "redis".
        timeout_seconds: Upper bound on each store call. Expiry is treated
            as a store failure by the rate limiter.
        max_entries: Capacity of the in-memory backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["memory", "redis"] = Field(default="memory", description="Store backend")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    timeout_seconds: float = Field(
        default=0.5, gt=0.0, le=30.0, description="Per-call store timeout (seconds)"
    )
    max_entries: int = Field(
        default=100_000, ge=1, description="Max keys held by the in-memory backend"
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Ensure the Redis URL uses a supported scheme.

        Raises:
            ValueError: If the URL does not start with redis://, rediss:// or unix://.
        """
        if not v.startswith(("redis://", "rediss://", "unix://")):
            msg = "redis_url must start with redis://, rediss:// or unix://"
            raise ValueError(msg)
        return v


class InferenceConfig(BaseSettings):
    """Remote inference service configuration.

    The defaults target the Cloudflare Workers AI REST API. base_url,
    account_id and api_token must be supplied for real traffic.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFERENCE_",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = Field(
        default="https://api.cloudflare.com/client/v4", description="Inference API base URL"
    )
    account_id: str = Field(default="", description="Account identifier")
    api_token: SecretStr | None = Field(default=None, description="Inference API token")
    default_model: str = Field(default="@cf/openai/gpt-oss-120b", description="Default model")
    timeout: float = Field(default=120.0, ge=1.0, le=600.0, description="Request timeout (seconds)")
    default_max_tokens: int = Field(default=1024, ge=1, le=4096, description="Default max tokens")
    default_temperature: float = Field(
        default=0.7, ge=0.0, le=2.0, description="Default sampling temperature"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format.

        Raises:
            ValueError: If base_url doesn't start with http:// or https://.
        """
        if not v.startswith(("http://", "https://")):
            msg = "base_url must start with http:// or https://"
            raise ValueError(msg)
        return v.rstrip("/")


class ContextConfig(BaseSettings):
    """Conversation context budgets.

    Attributes:
        model_char_budgets: Per-model character budgets merged over the
            built-in table. Supplied as JSON, e.g.
            CONTEXT_MODEL_CHAR_BUDGETS='{"@cf/meta/llama-3.1-8b-instruct": 32000}'.
        default_char_budget: Budget for models missing from the table.
        max_message_chars: Upper bound on a single message's content.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTEXT_",
        case_sensitive=False,
        extra="ignore",
    )

    model_char_budgets: dict[str, NonNegativeInt] = Field(
        default_factory=dict, description="Per-model character budget overrides"
    )
    default_char_budget: int = Field(
        default=400_000, ge=0, description="Character budget for unknown models"
    )
    max_message_chars: int = Field(
        default=32_000, ge=1, description="Max characters in a single message"
    )


class Settings(BaseSettings):
    """Root settings class containing all configuration sections.

    Configuration is loaded from:
        1. Environment variables (with appropriate prefixes)
        2. .env file (if present in the working directory)
        3. Default values (if not set)

    Note:
        Settings are loaded once at module import and cached. Changes to
        environment variables require application restart to take effect.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api: APIConfig = Field(default_factory=APIConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)

    @classmethod
    @lru_cache(maxsize=1)
    def get_settings(cls) -> Settings:
        """Get cached settings instance (singleton pattern).

        Returns:
            Cached Settings instance with all configuration sections populated.
        """
        return cls()


# Global settings instance
settings = Settings.get_settings()

__all__ = [
    "APIConfig",
    "AuthConfig",
    "ContextConfig",
    "InferenceConfig",
    "RateLimitConfig",
    "Settings",
    "StoreConfig",
    "settings",
]
