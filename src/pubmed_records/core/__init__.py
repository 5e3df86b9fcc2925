"""Core building blocks: errors, settings, batching and retry."""

from .batching import coerce_identifiers, partition
from .exceptions import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    MalformedResponse,
    NetworkError,
    PubMedRecordsError,
    RateLimitError,
    ServiceUnavailableError,
    TransientUpstreamFailure,
    is_retryable_error,
)
from .results import Unavailable, is_unavailable
from .retry import MAX_ATTEMPTS, retry_call
from .settings import NCBISettings

__all__ = [
    "MAX_ATTEMPTS",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "MalformedResponse",
    "NCBISettings",
    "NetworkError",
    "PubMedRecordsError",
    "RateLimitError",
    "ServiceUnavailableError",
    "TransientUpstreamFailure",
    "Unavailable",
    "coerce_identifiers",
    "is_retryable_error",
    "is_unavailable",
    "partition",
    "retry_call",
]
