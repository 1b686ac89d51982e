#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the reply
generation service. Every tunable the orchestrator, the adapters and the worker
read lives here.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with reload_settings()
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis configuration for the coordination store, broadcasts and the job queue.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LLMProviderSettings(BaseSettings):
    """
    Language-model backend configuration.

    STAGE-0.2: Backend configuration

    API keys are NOT configured here: they belong to each user and are
    resolved per run from the user record.
    """

    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1", description="OpenAI base URL")
    ANTHROPIC_BASE_URL: str = Field(default="https://api.anthropic.com", description="Anthropic base URL")
    ANTHROPIC_API_VERSION: str = Field(default="2023-06-01", description="anthropic-version header")
    LLM_TIMEOUT: int = Field(default=60, description="Backend request timeout in seconds")
    LLM_DEFAULT_MAX_TOKENS: int = Field(default=2000, description="Max tokens when the assistant sets none")
    USE_FAKE_LLM: bool = Field(default=False, description="Serve every backend with the scripted fake provider")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class GenerationSettings(BaseSettings):
    """
    Orchestrator tunables.

    STAGE-G: Generation lifecycle configuration
    """

    BROADCAST_THROTTLE_SECONDS: float = Field(
        default=0.1, description="Minimum gap between intermediate broadcasts"
    )
    STALENESS_DURABLE_REFRESH_INTERVAL: int = Field(
        default=10,
        ge=1,
        description="Every Nth staleness check after the first re-reads the durable store",
    )
    CLAIM_TIMEOUT_SECONDS: float = Field(
        default=600.0,
        gt=0,
        description="Age after which another run may take over an unfinished claim",
    )
    BROADCAST_CHANNEL_PREFIX: str = Field(
        default="conversation:", description="Pub/Sub channel prefix for message broadcasts"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class WorkerSettings(BaseSettings):
    """
    Scheduler-side settings.

    STAGE-W: Job retry policy and queue consumption
    """

    JOB_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Attempts for ordering retries")
    JOB_RETRY_TIME_UNIT_SECONDS: float = Field(
        default=1.0, ge=0, description="Time unit for the 2**attempt - 1 backoff"
    )
    JOB_QUEUE_KEY: str = Field(default="replygen:jobs", description="Redis list holding queued jobs")
    JOB_POLL_INTERVAL_SECONDS: float = Field(default=0.5, description="Sleep when the queue is empty")
    MESSAGE_STORE_FACTORY: str | None = Field(
        default=None, description="Import path 'module:callable' returning the durable MessageStore"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Reply Generation Worker", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    EXECUTION_TRACKING_ENABLED: bool = Field(default=True, description="Enable execution tracking")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from replygen.core.config.settings import get_settings

        settings = get_settings()
        throttle = settings.generation.BROADCAST_THROTTLE_SECONDS
        redis_host = settings.redis.REDIS_HOST
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # LLM backend settings
    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1", description="OpenAI base URL")
    ANTHROPIC_BASE_URL: str = Field(default="https://api.anthropic.com", description="Anthropic base URL")
    ANTHROPIC_API_VERSION: str = Field(default="2023-06-01", description="anthropic-version header")
    LLM_TIMEOUT: int = Field(default=60, description="Backend request timeout in seconds")
    LLM_DEFAULT_MAX_TOKENS: int = Field(default=2000, description="Max tokens when the assistant sets none")
    USE_FAKE_LLM: bool = Field(default=False, description="Serve every backend with the scripted fake provider")

    # Generation settings
    BROADCAST_THROTTLE_SECONDS: float = Field(default=0.1, description="Minimum gap between broadcasts")
    STALENESS_DURABLE_REFRESH_INTERVAL: int = Field(default=10, ge=1, description="Durable re-check cadence")
    CLAIM_TIMEOUT_SECONDS: float = Field(default=600.0, gt=0, description="Claim takeover age")
    BROADCAST_CHANNEL_PREFIX: str = Field(default="conversation:", description="Broadcast channel prefix")

    # Worker settings
    JOB_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Attempts for ordering retries")
    JOB_RETRY_TIME_UNIT_SECONDS: float = Field(default=1.0, ge=0, description="Backoff time unit")
    JOB_QUEUE_KEY: str = Field(default="replygen:jobs", description="Redis list holding queued jobs")
    JOB_POLL_INTERVAL_SECONDS: float = Field(default=0.5, description="Sleep when the queue is empty")
    MESSAGE_STORE_FACTORY: str | None = Field(default=None, description="MessageStore factory import path")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Reply Generation Worker", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    EXECUTION_TRACKING_ENABLED: bool = Field(default=True, description="Enable execution tracking")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    # Nested configuration objects
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL
        )

    @property
    def llm(self) -> LLMProviderSettings:
        """Get LLM backend settings."""
        return LLMProviderSettings(
            OPENAI_BASE_URL=self.OPENAI_BASE_URL,
            ANTHROPIC_BASE_URL=self.ANTHROPIC_BASE_URL,
            ANTHROPIC_API_VERSION=self.ANTHROPIC_API_VERSION,
            LLM_TIMEOUT=self.LLM_TIMEOUT,
            LLM_DEFAULT_MAX_TOKENS=self.LLM_DEFAULT_MAX_TOKENS,
            USE_FAKE_LLM=self.USE_FAKE_LLM
        )

    @property
    def generation(self) -> GenerationSettings:
        """Get orchestrator settings."""
        return GenerationSettings(
            BROADCAST_THROTTLE_SECONDS=self.BROADCAST_THROTTLE_SECONDS,
            STALENESS_DURABLE_REFRESH_INTERVAL=self.STALENESS_DURABLE_REFRESH_INTERVAL,
            CLAIM_TIMEOUT_SECONDS=self.CLAIM_TIMEOUT_SECONDS,
            BROADCAST_CHANNEL_PREFIX=self.BROADCAST_CHANNEL_PREFIX
        )

    @property
    def worker(self) -> WorkerSettings:
        """Get worker settings."""
        return WorkerSettings(
            JOB_MAX_ATTEMPTS=self.JOB_MAX_ATTEMPTS,
            JOB_RETRY_TIME_UNIT_SECONDS=self.JOB_RETRY_TIME_UNIT_SECONDS,
            JOB_QUEUE_KEY=self.JOB_QUEUE_KEY,
            JOB_POLL_INTERVAL_SECONDS=self.JOB_POLL_INTERVAL_SECONDS,
            MESSAGE_STORE_FACTORY=self.MESSAGE_STORE_FACTORY,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT
        )

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            EXECUTION_TRACKING_ENABLED=self.EXECUTION_TRACKING_ENABLED
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings(**overrides) -> Settings:
    """
    Reload settings (useful for testing).

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings(**overrides)
    return _settings
