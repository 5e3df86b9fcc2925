"""
Exception hierarchy for PubMed Records.

Exception Hierarchy:
    PubMedRecordsError (base)
    ├── ConfigurationError
    ├── TransientUpstreamFailure
    │   ├── NetworkError
    │   ├── RateLimitError
    │   └── ServiceUnavailableError
    └── MalformedResponse

Only ConfigurationError is meant to reach callers of the retrieval API.
Upstream failures are retried and then absorbed at the batch boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = auto()      # Recoverable, can continue
    ERROR = auto()        # Failed but can retry
    CRITICAL = auto()     # Cannot continue
    TRANSIENT = auto()    # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""
    API = "api"
    DATA = "data"
    CONFIGURATION = "config"
    NETWORK = "network"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Structured details attached to an error."""
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    status_code: int | None = None


class PubMedRecordsError(Exception):
    """
    Base exception for all PubMed Records errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.operation:
            result["operation"] = self.context.operation
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.status_code is not None:
            result["status_code"] = self.context.status_code
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(PubMedRecordsError):
    """Raised for invalid caller input: bad identifiers, endpoint or sizes."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


def invalid_parameter(name: str, value: Any, expected: str) -> ConfigurationError:
    """Build a ConfigurationError for a single bad argument."""
    return ConfigurationError(
        f"Invalid parameter '{name}': {value!r} (expected {expected})",
        context=ErrorContext(input_value=value, suggestion=f"Expected {expected}"),
    )


# =============================================================================
# Upstream Errors
# =============================================================================

class TransientUpstreamFailure(PubMedRecordsError):
    """Connection failure, timeout or non-2xx status from an upstream API."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.TRANSIENT,
            category=ErrorCategory.API,
            retryable=True,
        )


class NetworkError(TransientUpstreamFailure):
    """Raised for connectivity problems and unexpected HTTP statuses."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.category = ErrorCategory.NETWORK


class RateLimitError(TransientUpstreamFailure):
    """Raised when an API answers HTTP 429."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = replace(
            ctx,
            suggestion=ctx.suggestion or "Increase the sleep between requests or supply an API key",
            retry_after=retry_after,
        )
        super().__init__(message, context=ctx)


class ServiceUnavailableError(TransientUpstreamFailure):
    """Raised when the external service answers with a 5xx status."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        service: str = "NCBI",
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"{service}: {message}", context=context)


# =============================================================================
# Data Errors
# =============================================================================

class MalformedResponse(PubMedRecordsError):
    """Raised when a response body cannot be parsed into the expected shape."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Parse error: {message}"
        if source:
            full_msg = f"Parse error ({source}): {message}"
        super().__init__(
            full_msg,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=True,
        )


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, PubMedRecordsError):
        return error.retryable
    return False
