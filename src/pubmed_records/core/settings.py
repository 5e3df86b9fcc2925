"""
NCBI request settings.

A frozen value passed explicitly to every adapter call; nothing here is
process-wide, so concurrent calls with different API keys do not interfere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any

import httpx

DEFAULT_TOOL = "pubmed-records"
DEFAULT_USER_AGENT = "pubmed-records/0.1.0"


@dataclass(frozen=True)
class NCBISettings:
    """
    Identification and transport settings for NCBI and related APIs.

    Attributes:
        email: Contact address sent to E-utilities
        api_key: Optional NCBI API key (raises the allowed request rate)
        tool: Tool name sent to E-utilities
        timeout: Per-request timeout in seconds for httpx calls
        user_agent: User-Agent header for httpx calls
        transport: Optional httpx transport (e.g. httpx.MockTransport)
    """

    email: str | None = None
    api_key: str | None = None
    tool: str = DEFAULT_TOOL
    timeout: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    transport: httpx.BaseTransport | None = None

    @classmethod
    def from_env(cls) -> NCBISettings:
        """Load settings from NCBI_EMAIL and NCBI_API_KEY."""
        return cls(
            email=os.environ.get("NCBI_EMAIL", "").strip() or None,
            api_key=os.environ.get("NCBI_API_KEY", "").strip() or None,
        )

    def with_api_key(self, api_key: str | None) -> NCBISettings:
        """Return a copy using ``api_key``; a falsy key keeps the current one."""
        if not api_key:
            return self
        return replace(self, api_key=api_key)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def entrez_params(self) -> dict[str, Any]:
        """Parameters identifying this caller to E-utilities and NCBI services."""
        params: dict[str, Any] = {"tool": self.tool}
        if self.email:
            params["email"] = self.email
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def http_client(self) -> httpx.Client:
        """Build a fresh client; callers own it and close it with ``with``."""
        return httpx.Client(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self.transport,
        )
