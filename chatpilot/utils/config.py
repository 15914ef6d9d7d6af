"""
Configuration Management
========================

All settings the orchestration layer needs, read from the environment (and a
.env file) in one place and exposed as typed, frozen dataclasses.

The settings store of the host application is expected to export these
variables (or to build a Config directly); the core never persists
credentials itself.

Usage:
    from chatpilot.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.rate_limit.requests_per_minute)
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from chatpilot.errors import ConfigurationError
from chatpilot.utils.logger import Logger

logger = Logger("Config")


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ConfigurationError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    return value.lower() == "true"


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class OpenAIConfig:
    """Chat completion endpoint settings."""
    api_key: str
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o"
    max_tokens: int = 4000
    temperature: float = 0.7
    max_retries: int = 3          # Queue-level retries, not SDK retries
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Self-imposed client-side ceilings."""
    requests_per_minute: int = 60
    tokens_per_minute: int = 90000


@dataclass(frozen=True)
class ContextConfig:
    """How much stored history is sent upstream with each request."""
    optimize: bool = True
    max_context_messages: int = 20
    max_context_tokens: int = 3000
    max_history_messages: int = 50


@dataclass(frozen=True)
class SearchConfig:
    """Tavily web search settings. The key is optional until a search runs."""
    api_key: str | None = None
    search_depth: str = "basic"
    max_results: int = 5


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.openai.api_key
        config.rate_limit.tokens_per_minute
        config.search.api_key
    """
    openai: OpenAIConfig
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    log_level: str = "info"


def load_config() -> Config:
    """
    Load and validate configuration from the environment.

    Raises:
        ConfigurationError: If OPENAI_API_KEY is missing
    """
    load_dotenv()

    return Config(
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            base_url=_optional("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            model=_optional("OPENAI_MODEL", "gpt-4o"),
            max_tokens=_optional_int("OPENAI_MAX_TOKENS", 4000),
            temperature=_optional_float("OPENAI_TEMPERATURE", 0.7),
            max_retries=_optional_int("OPENAI_MAX_RETRIES", 3),
            timeout_seconds=_optional_float("OPENAI_TIMEOUT_SECONDS", 60.0),
        ),
        rate_limit=RateLimitConfig(
            requests_per_minute=_optional_int("RATE_LIMIT_RPM", 60),
            tokens_per_minute=_optional_int("RATE_LIMIT_TPM", 90000),
        ),
        context=ContextConfig(
            optimize=_optional_bool("CONTEXT_OPTIMIZATION", True),
            max_context_messages=_optional_int("MAX_CONTEXT_MESSAGES", 20),
            max_context_tokens=_optional_int("MAX_CONTEXT_TOKENS", 3000),
            max_history_messages=_optional_int("MAX_HISTORY_MESSAGES", 50),
        ),
        search=SearchConfig(
            api_key=os.getenv("TAVILY_API_KEY") or None,
            search_depth=_optional("TAVILY_SEARCH_DEPTH", "basic"),
            max_results=_optional_int("TAVILY_MAX_RESULTS", 5),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton Accessor
# ==============================================================================
# Settings are immutable, so one shared instance is safe. Mutable runtime
# state (queues, counters, history) lives on the objects create_agent() builds.

_config_instance: Config | None = None


def get_config() -> Config:
    """Load the configuration on first access and cache it."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _config_instance
    _config_instance = None


def is_search_configured(config: Config | None = None) -> bool:
    """Check if a Tavily API key is available."""
    config = config or get_config()
    return bool(config.search.api_key)
