"""
Bounded retry-with-delay.

Every retried upstream call in the package goes through ``retry_call``:
attempts are strictly sequential, failures classified as transient
(``TransientUpstreamFailure``, ``MalformedResponse``) are retried after a
delay, and exhaustion yields an ``Unavailable`` value instead of an exception.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pubmed_records.core.exceptions import invalid_parameter, is_retryable_error
from pubmed_records.core.results import Unavailable

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 15


def _log_retry(label: str, attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        wait_time = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"{label} failed (attempt {retry_state.attempt_number}/{attempts}): {error}; "
            f"retrying in {wait_time:.1f}s"
        )

    return before_sleep


def retry_call(
    operation: Callable[[], T],
    *,
    attempts: int = MAX_ATTEMPTS,
    delay: float = 1.0,
    backoff: float = 1.0,
    label: str = "request",
) -> T | Unavailable:
    """
    Run ``operation`` until it succeeds or ``attempts`` is exhausted.

    Args:
        operation: Zero-argument callable performing one attempt
        attempts: Maximum number of attempts (>= 1)
        delay: Seconds to wait after a failed attempt
        backoff: Multiplier applied to ``delay`` per further attempt
        label: Name used in log messages

    Returns:
        The operation's result, or Unavailable once every attempt failed.
        Errors that are not retryable propagate unchanged.
    """
    if attempts < 1:
        raise invalid_parameter("attempts", attempts, "an integer >= 1")
    if delay < 0:
        raise invalid_parameter("delay", delay, "a non-negative number")

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=delay, exp_base=backoff, min=0),
        retry=retry_if_exception(is_retryable_error),
        sleep=time.sleep,
        before_sleep=_log_retry(label, attempts),
        reraise=False,
    )
    try:
        return retrying(operation)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error(f"{label} gave up after {attempts} attempts: {last_error}")
        return Unavailable(f"{label} failed after {attempts} attempts: {last_error}")
