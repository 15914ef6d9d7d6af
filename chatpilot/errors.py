"""
Error Types
===========

Exceptions raised by the orchestration layer.

Callers of the agent only ever see one of two outcomes: a final answer, or a
single terminal exception after the request queue has exhausted its retries.
Everything else (tool failures, classifier parse failures, rate-limit waits)
is absorbed internally.

Hierarchy:
    ChatPilotError
    ├── ConfigurationError   missing or invalid settings (also a ValueError)
    ├── CompletionError      chat completion failed after all retries
    ├── ToolExecutionError   infrastructure failure inside a tool
    └── AgentError           pipeline produced no usable answer
"""

from enum import Enum

import openai


class ErrorCategory(str, Enum):
    """Coarse classification of a failed completion call."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_REQUEST = "invalid_request"
    SERVER = "server"
    UNKNOWN = "unknown"


class ChatPilotError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ChatPilotError, ValueError):
    """A required credential or setting is missing or malformed."""


class ToolExecutionError(ChatPilotError):
    """A tool could not reach its backing service."""


class AgentError(ChatPilotError):
    """The agent pipeline could not produce a response."""


class CompletionError(ChatPilotError):
    """
    A chat completion request failed.

    Attributes:
        message: Human-readable description (upstream message when available)
        category: ErrorCategory of the failure
        code: Upstream error code (e.g. "invalid_api_key"), if any
        status_code: HTTP status, or None for transport failures
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        code: str | None = None,
        status_code: int | None = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.code = code
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"CompletionError(category={self.category.value!r}, "
            f"status_code={self.status_code!r}, code={self.code!r}, "
            f"message={self.message!r})"
        )

    def to_dict(self) -> dict:
        """Render in the upstream `{"error": {...}}` shape."""
        return {
            "error": {
                "message": self.message,
                "type": self.category.value,
                "param": None,
                "code": self.code,
            }
        }

    @classmethod
    def from_exception(cls, exc: Exception) -> "CompletionError":
        """
        Build a CompletionError from whatever the transport raised.

        openai.APIStatusError carries the HTTP status and the parsed
        `{"error": {...}}` body; connection and timeout errors carry neither.
        """
        if isinstance(exc, CompletionError):
            return exc

        if isinstance(exc, openai.APITimeoutError):
            return cls(str(exc) or "Request timed out", ErrorCategory.TIMEOUT)

        if isinstance(exc, openai.APIConnectionError):
            return cls(str(exc) or "Network error occurred", ErrorCategory.NETWORK)

        if isinstance(exc, openai.APIStatusError):
            code = exc.code if isinstance(exc.code, str) else None
            return cls(
                exc.message,
                _category_for_status(exc.status_code, code),
                code=code,
                status_code=exc.status_code,
            )

        return cls(str(exc) or type(exc).__name__, ErrorCategory.UNKNOWN)


def _category_for_status(status_code: int, code: str | None) -> ErrorCategory:
    if status_code == 401 or status_code == 403:
        return ErrorCategory.AUTHENTICATION
    if status_code == 429:
        if code == "insufficient_quota":
            return ErrorCategory.QUOTA_EXCEEDED
        return ErrorCategory.RATE_LIMIT
    if status_code in (400, 404, 409, 422):
        return ErrorCategory.INVALID_REQUEST
    if status_code >= 500:
        return ErrorCategory.SERVER
    return ErrorCategory.UNKNOWN
