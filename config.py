"""Configuration management for the feedbrief webhook/summary service.

This module provides centralized configuration for all components.
All settings are loaded from environment variables with sensible defaults.
The resulting Config is immutable: build it once per invocation and pass it
to every component that needs it.

Environment Variables:
    Required:
        MINIFLUX_URL: Base URL of the Miniflux instance (content store)
        MINIFLUX_USERNAME: Miniflux user for Basic auth
        MINIFLUX_PASSWORD: Miniflux password for Basic auth
        MINIFLUX_WEBHOOK_SECRET: Shared secret used to sign webhook bodies

    Summarization:
        SUMMARY_BACKEND: 'workers-ai' (default) or 'agent'
        CF_AI_URL: Workers AI base URL (required for workers-ai)
        CF_AI_TOKEN: Workers AI bearer token (required for workers-ai)
        CF_AI_MODEL: Summarization model identifier
        SUMMARY_MODEL: PydanticAI model string for the 'agent' backend
        SUMMARY_MAX_LENGTH: max_length sent with each summary request

    Pipeline Behavior:
        MIN_CONTENT_LENGTH: Minimum trimmed content length worth summarizing
        MAX_CONCURRENT: In-flight ceiling for queue writes and drain pipelines
        REQUEST_TIMEOUT: Timeout in seconds for each outbound HTTP call
        POLL_INTERVAL_SECONDS: Delay between drain cycles
        QUEUE_PATH: SQLite file backing the durable entry queue

    Server:
        HOST, PORT: Bind address for the webhook server
        WEBHOOK_PATH: Route that accepts webhook deliveries
        MAX_BODY_BYTES: Largest accepted webhook body

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


class ConfigError(Exception):
    """Raised when a required setting is missing or unusable at runtime."""
    pass


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Parsed integer or default value

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


SUMMARY_BACKENDS = ("workers-ai", "agent")


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables.

    Use Config.load() to create an instance with values from the environment,
    and dataclasses.replace() to derive an overridden copy.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Content store (Miniflux) ===
    miniflux_url: str = ""  # MINIFLUX_URL - Base URL, no trailing slash needed
    miniflux_username: str = ""  # MINIFLUX_USERNAME
    miniflux_password: str = ""  # MINIFLUX_PASSWORD
    webhook_secret: str = ""  # MINIFLUX_WEBHOOK_SECRET - HMAC key for intake

    # === Summarization ===
    summary_backend: str = "workers-ai"  # SUMMARY_BACKEND
    ai_url: str = ""  # CF_AI_URL - e.g. https://api.cloudflare.com/client/v4/accounts/<id>/ai
    ai_token: str = ""  # CF_AI_TOKEN
    ai_model: str = "@cf/facebook/bart-large-cnn"  # CF_AI_MODEL
    summary_model: str = "openai:gpt-4o-mini"  # SUMMARY_MODEL - PydanticAI format
    summary_max_length: int = 512  # SUMMARY_MAX_LENGTH

    # === Pipeline Behavior ===
    min_content_length: int = 500  # MIN_CONTENT_LENGTH
    max_concurrent: int = 5  # MAX_CONCURRENT
    request_timeout: int = 30  # REQUEST_TIMEOUT (seconds)
    poll_interval_seconds: int = 300  # POLL_INTERVAL_SECONDS
    queue_path: Path = field(default_factory=lambda: Path("queue.db"))  # QUEUE_PATH

    # === Server ===
    host: str = "0.0.0.0"  # HOST
    port: int = 8080  # PORT
    webhook_path: str = "/"  # WEBHOOK_PATH
    max_body_bytes: int = 10 * 1024 * 1024  # MAX_BODY_BYTES

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES - 0 = time-based rotation
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json'

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            miniflux_url=_env("MINIFLUX_URL").rstrip("/"),
            miniflux_username=_env("MINIFLUX_USERNAME"),
            miniflux_password=_env("MINIFLUX_PASSWORD"),
            webhook_secret=_env("MINIFLUX_WEBHOOK_SECRET"),
            summary_backend=_env("SUMMARY_BACKEND", "workers-ai").lower(),
            ai_url=_env("CF_AI_URL").rstrip("/"),
            ai_token=_env("CF_AI_TOKEN"),
            ai_model=_env("CF_AI_MODEL", "@cf/facebook/bart-large-cnn"),
            summary_model=_env("SUMMARY_MODEL", "openai:gpt-4o-mini"),
            summary_max_length=_env_int("SUMMARY_MAX_LENGTH", 512),
            min_content_length=_env_int("MIN_CONTENT_LENGTH", 500),
            max_concurrent=_env_int("MAX_CONCURRENT", 5),
            request_timeout=_env_int("REQUEST_TIMEOUT", 30),
            poll_interval_seconds=_env_int("POLL_INTERVAL_SECONDS", 300),
            queue_path=Path(_env("QUEUE_PATH", "queue.db")),
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8080),
            webhook_path=_env("WEBHOOK_PATH", "/"),
            max_body_bytes=_env_int("MAX_BODY_BYTES", 10 * 1024 * 1024),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Checks:
            - Miniflux URL, credentials and webhook secret are set
            - The summary backend is known and has its credentials
            - Numeric values are positive

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.miniflux_url:
            return "MINIFLUX_URL environment variable is required"
        if not self.miniflux_username or not self.miniflux_password:
            return "MINIFLUX_USERNAME and MINIFLUX_PASSWORD environment variables are required"
        if not self.webhook_secret:
            return "MINIFLUX_WEBHOOK_SECRET environment variable is required"
        if self.summary_backend not in SUMMARY_BACKENDS:
            return f"Invalid SUMMARY_BACKEND '{self.summary_backend}' - must be 'workers-ai' or 'agent'"
        if self.summary_backend == "workers-ai":
            if not self.ai_url or not self.ai_token:
                return "CF_AI_URL and CF_AI_TOKEN environment variables are required"
            if not self.ai_model:
                return "CF_AI_MODEL must not be empty"
        elif not self.summary_model:
            return "SUMMARY_MODEL must not be empty"
        if self.summary_max_length <= 0:
            return "SUMMARY_MAX_LENGTH must be positive"
        if self.min_content_length < 0:
            return "MIN_CONTENT_LENGTH must be non-negative"
        if self.max_concurrent <= 0:
            return "MAX_CONCURRENT must be positive"
        if self.request_timeout <= 0:
            return "REQUEST_TIMEOUT must be positive"
        if self.poll_interval_seconds <= 0:
            return "POLL_INTERVAL_SECONDS must be positive"
        if not self.webhook_path.startswith("/"):
            return f"Invalid WEBHOOK_PATH '{self.webhook_path}' - must start with '/'"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
