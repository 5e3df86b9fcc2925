"""
PubMed Records MCP Server

Exposes batched PubMed, iCite, PubTator3 and PMC retrieval as MCP tools.
"""

from __future__ import annotations

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from pubmed_records.container import RecordsContainer

from .tools import register_records_tools

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = """
PubMed Records - batched retrieval of article data keyed by PMID.

Typical flow:
1. search_pmids(query) -> PMIDs
2. fetch_records(pmids, endpoint="pubmed_abstracts") for titles and abstracts
3. fetch_records(pmids, endpoint="icites") for citation metrics and networks
4. fetch_records(pmids, endpoint="pubtations") for gene/disease/chemical mentions
5. resolve_fulltext_urls(pmids) then fetch_records(urls, endpoint="pmc_fulltext")

describe_endpoint() lists endpoints; describe_endpoint(name) gives columns and limits.
Batches that fail upstream are dropped, so fewer rows than PMIDs is normal.
"""


def create_server(
    email: str | None = None,
    api_key: str | None = None,
    name: str = "pubmed-records",
    container: RecordsContainer | None = None,
) -> FastMCP:
    """
    Create and configure the PubMed Records MCP server.

    Args:
        email: Email address for NCBI E-utilities.
        api_key: Optional NCBI API key for higher rate limits.
        name: Server name.
        container: Pre-configured container (tests); built from email/api_key otherwise.

    Returns:
        Configured FastMCP server instance.
    """
    logger.info("Initializing PubMed Records MCP Server...")

    if container is None:
        container = RecordsContainer()
        container.config.from_dict({"email": email, "api_key": api_key})

    mcp = FastMCP(name, instructions=SERVER_INSTRUCTIONS)
    register_records_tools(mcp, container.settings())

    logger.info("PubMed Records MCP Server initialized successfully")
    return mcp


def main():
    """Run the MCP server."""

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Email / API key: CLI arg -> env var
    email = sys.argv[1] if len(sys.argv) > 1 else os.environ.get("NCBI_EMAIL", "").strip() or None
    if not email:
        logger.info("No NCBI_EMAIL configured; NCBI asks clients to identify themselves")
    api_key = sys.argv[2] if len(sys.argv) > 2 else os.environ.get("NCBI_API_KEY", "").strip() or None

    server = create_server(email=email, api_key=api_key)
    server.run()


if __name__ == "__main__":
    main()
