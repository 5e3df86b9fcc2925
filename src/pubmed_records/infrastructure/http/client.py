"""
HTTP helpers built on httpx.

Clients are created per call from ``NCBISettings.http_client()``; the helpers
here only perform requests and translate failures into the package's
exception taxonomy:

    HTTP 429            -> RateLimitError
    HTTP 5xx            -> ServiceUnavailableError
    other non-2xx       -> NetworkError
    timeout / transport -> NetworkError
    malformed URL       -> NetworkError

Usage:
    with settings.http_client() as client:
        text = http_get_text(client, ICITE_URL, params={"pmids": "1,2"})
"""

from __future__ import annotations

import logging
import urllib.error
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx

from pubmed_records.core.exceptions import (
    ErrorContext,
    NetworkError,
    RateLimitError,
    ServiceUnavailableError,
    TransientUpstreamFailure,
)

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _get_domain(url: str) -> str:
    """Extract domain from URL for error messages, rejecting unparseable URLs."""
    try:
        return urlparse(url).netloc or url
    except ValueError as e:
        raise NetworkError(f"Invalid URL {url!r}: {e}") from e


def _retry_after(value: str | None) -> float:
    try:
        return float(value) if value else 1.0
    except ValueError:
        return 1.0


def status_error(
    status: int,
    reason: str,
    *,
    service: str,
    retry_after: str | None = None,
) -> TransientUpstreamFailure:
    """Map a non-2xx status to the matching upstream failure."""
    context = ErrorContext(operation=service, status_code=status)
    if status == 429:
        return RateLimitError(
            f"Rate limited by {service}",
            retry_after=_retry_after(retry_after),
            context=context,
        )
    if status >= 500:
        return ServiceUnavailableError(f"HTTP {status}: {reason}", service=service, context=context)
    return NetworkError(f"HTTP {status}: {reason} from {service}", context=context)


def urllib_error(error: Exception, *, service: str) -> TransientUpstreamFailure:
    """Map urllib-level failures (as raised by Bio.Entrez) to upstream failures."""
    if isinstance(error, urllib.error.HTTPError):
        return status_error(
            error.code,
            str(error.reason),
            service=service,
            retry_after=error.headers.get("Retry-After") if error.headers else None,
        )
    if isinstance(error, urllib.error.URLError):
        return NetworkError(f"Connection to {service} failed: {error.reason}")
    if isinstance(error, TimeoutError):
        return NetworkError(f"Request to {service} timed out")
    return NetworkError(f"Request to {service} failed: {error}")


def http_get(
    client: httpx.Client,
    url: str,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    """
    Perform a GET request and raise on any non-2xx outcome.

    Raises:
        RateLimitError: When rate limited (HTTP 429)
        ServiceUnavailableError: When service is unavailable (HTTP 5xx)
        NetworkError: On other statuses, timeouts and transport failures
    """
    domain = _get_domain(url)
    try:
        response = client.get(url, params=params)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Request to {domain} timed out") from e
    except httpx.InvalidURL as e:
        raise NetworkError(f"Invalid URL {url!r}: {e}") from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Connection to {domain} failed: {e}") from e

    if not response.is_success:
        logger.debug(f"HTTP {response.status_code} from {url}")
        raise status_error(
            response.status_code,
            response.reason_phrase,
            service=domain,
            retry_after=response.headers.get("Retry-After"),
        )
    return response


def http_get_text(
    client: httpx.Client,
    url: str,
    params: dict[str, Any] | None = None,
) -> str:
    """GET ``url`` and return the decoded body."""
    return http_get(client, url, params).text


def download(client: httpx.Client, url: str, destination: Path) -> Path:
    """Stream ``url`` into ``destination`` and return the path."""
    domain = _get_domain(url)
    try:
        with client.stream("GET", url) as response:
            if not response.is_success:
                raise status_error(
                    response.status_code,
                    response.reason_phrase,
                    service=domain,
                    retry_after=response.headers.get("Retry-After"),
                )
            with destination.open("wb") as fh:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                    fh.write(chunk)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Download from {domain} timed out") from e
    except httpx.InvalidURL as e:
        raise NetworkError(f"Invalid URL {url!r}: {e}") from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Download from {domain} failed: {e}") from e
    return destination
