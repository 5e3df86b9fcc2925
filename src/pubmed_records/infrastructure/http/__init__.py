"""HTTP request helpers."""

from .client import download, http_get, http_get_text, status_error, urllib_error

__all__ = ["download", "http_get", "http_get_text", "status_error", "urllib_error"]
