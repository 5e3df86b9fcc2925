"""
Application DI container (dependency-injector).

Holds the per-server NCBI settings so MCP tools do not read the environment
or keep module globals.

Usage::

    from pubmed_records.container import RecordsContainer

    container = RecordsContainer()
    container.config.from_dict({"email": "user@example.com", "api_key": None})
    settings = container.settings()

    # In tests, override any provider:
    container.settings.override(providers.Object(NCBISettings(transport=mock)))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)


def _create_settings(email: str | None, api_key: str | None, timeout: float | None) -> NCBISettings:
    extra = {"timeout": float(timeout)} if timeout else {}
    settings = NCBISettings(email=email or None, api_key=api_key or None, **extra)
    logger.debug(f"NCBI settings created (api key: {'yes' if settings.has_api_key else 'no'})")
    return settings


class RecordsContainer(containers.DeclarativeContainer):
    """Central DI container for the PubMed Records MCP server."""

    config = providers.Configuration()

    settings = providers.Singleton(
        _create_settings,
        email=config.email,
        api_key=config.api_key,
        timeout=config.timeout,
    )


__all__ = ["RecordsContainer"]
