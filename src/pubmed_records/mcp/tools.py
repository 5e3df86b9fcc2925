"""
MCP tools over the retrieval API.

Tools run the blocking retrieval calls in a worker thread and answer JSON.
Invalid arguments come back as an error object instead of an exception.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import asdict, is_dataclass
from typing import TYPE_CHECKING, Any

import pandas as pd

from pubmed_records.application.endpoints import endpoint_info
from pubmed_records.application.retrieval import get_records
from pubmed_records.core.exceptions import ConfigurationError
from pubmed_records.infrastructure.ncbi.idconv import pmid_to_ftp, pmid_to_pmc
from pubmed_records.infrastructure.ncbi.search import search_pubmed

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 200


def _jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return _jsonable(value.item())
    return value


def frame_to_json(frame: pd.DataFrame, limit: int | None = DEFAULT_ROW_LIMIT) -> str:
    """Serialize a result table, truncated to ``limit`` rows."""
    rows = frame if limit is None else frame.head(limit)
    records = [
        {column: _jsonable(value) for column, value in row.items()}
        for row in rows.to_dict(orient="records")
    ]
    return json.dumps(
        {"total_rows": len(frame), "returned_rows": len(records), "rows": records},
        ensure_ascii=False,
        indent=2,
    )


def _split_ids(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.replace("\n", ",").split(",") if part.strip()]
    return [str(v).strip() for v in value]


def register_records_tools(mcp: FastMCP, settings: NCBISettings) -> None:
    """Register retrieval tools with the MCP server."""

    @mcp.tool()
    async def fetch_records(
        pmids: str | list[str],
        endpoint: str = "pubmed_abstracts",
        cores: int = 3,
        limit: int = DEFAULT_ROW_LIMIT,
    ) -> str:
        """
        Retrieve records for PubMed IDs from one endpoint.

        Args:
            pmids: Comma-separated PMIDs or a list (download URLs for pmc_fulltext)
            endpoint: pubmed_abstracts, pubmed_affiliations, pubmed_references,
                icites, pubtations or pmc_fulltext
            cores: Parallel workers
            limit: Maximum rows returned in the response

        Returns:
            JSON with total_rows, returned_rows and rows
        """
        try:
            frame = await asyncio.to_thread(
                get_records, _split_ids(pmids), endpoint, cores=cores, settings=settings
            )
        except ConfigurationError as e:
            return json.dumps(e.to_dict())
        return frame_to_json(frame, limit)

    @mcp.tool()
    def describe_endpoint(endpoint: str | None = None) -> str:
        """
        List endpoints, or describe one endpoint's columns, batch size and rate limits.

        Args:
            endpoint: Endpoint name; omit to list all endpoints
        """
        try:
            return endpoint_info(endpoint, format="json")
        except ConfigurationError as e:
            return json.dumps(e.to_dict())

    @mcp.tool()
    async def convert_pmids(pmids: str | list[str]) -> str:
        """
        Convert PMIDs to PMC IDs and DOIs.

        Args:
            pmids: Comma-separated PMIDs or a list
        """
        try:
            frame = await asyncio.to_thread(pmid_to_pmc, _split_ids(pmids), settings=settings)
        except ConfigurationError as e:
            return json.dumps(e.to_dict())
        return frame_to_json(frame, limit=None)

    @mcp.tool()
    async def resolve_fulltext_urls(pmids: str | list[str]) -> str:
        """
        Resolve PMIDs to PMC open-access download URLs for use with pmc_fulltext.

        Args:
            pmids: Comma-separated PMIDs or a list
        """
        try:
            frame = await asyncio.to_thread(pmid_to_ftp, _split_ids(pmids), settings=settings)
        except ConfigurationError as e:
            return json.dumps(e.to_dict())
        return frame_to_json(frame, limit=None)

    @mcp.tool()
    async def search_pmids(
        query: str,
        start_year: int | None = None,
        end_year: int | None = None,
        retmax: int = 9999,
    ) -> str:
        """
        Search PubMed and return unique PMIDs.

        With both years set, one search is run per publication year.

        Args:
            query: PubMed search expression
            start_year: First publication year
            end_year: Last publication year
            retmax: Maximum PMIDs per search
        """
        use_years = start_year is not None and end_year is not None
        try:
            pmids = await asyncio.to_thread(
                search_pubmed,
                query,
                start_year,
                end_year,
                retmax,
                use_years,
                settings,
            )
        except ConfigurationError as e:
            return json.dumps(e.to_dict())
        return json.dumps({"count": len(pmids), "pmids": pmids}, indent=2)

    logger.info("Registered 5 retrieval tools")
