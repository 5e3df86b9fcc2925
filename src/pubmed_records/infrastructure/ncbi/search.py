"""
PubMed ESearch: query -> PMIDs.

Optionally splits the query per publication year so each year stays under
the ESearch ``retmax`` ceiling.
"""

from __future__ import annotations

import logging
import time
import urllib.error
from http.client import HTTPException

from Bio import Entrez

from pubmed_records.core.exceptions import invalid_parameter
from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

QUERY_SLEEP = 0.5


def _perform_search(query: str, retmax: int, settings: NCBISettings) -> list[str]:
    """Run one ESearch; failures are logged and yield no identifiers."""
    try:
        handle = Entrez.esearch(
            db="pubmed",
            term=query,
            retmax=retmax,
            usehistory="y",
            **settings.entrez_params(),
        )
        try:
            record = Entrez.read(handle)
        finally:
            handle.close()
    except (urllib.error.URLError, HTTPException, OSError, RuntimeError, ValueError) as e:
        logger.warning(f"Failed to retrieve data for query '{query}': {e}")
        return []

    if int(record.get("Count", 0)) == 0:
        return []
    return [str(pmid) for pmid in record.get("IdList", [])]


def search_pubmed(
    query: str,
    start_year: int | None = None,
    end_year: int | None = None,
    retmax: int = 9999,
    use_pub_years: bool = False,
    settings: NCBISettings | None = None,
) -> list[str]:
    """
    Search PubMed and return unique PMIDs in first-seen order.

    Args:
        query: PubMed search expression
        start_year: First publication year (with ``use_pub_years``)
        end_year: Last publication year (with ``use_pub_years``)
        retmax: Maximum identifiers per ESearch call
        use_pub_years: Run one query per year, ``<query> AND <year>[Pub Date]``
        settings: Caller identification; defaults to the environment

    Raises:
        ConfigurationError: On invalid arguments
    """
    if not isinstance(query, str) or not query.strip():
        raise invalid_parameter("query", query, "a non-empty search string")
    if isinstance(retmax, bool) or not isinstance(retmax, int) or retmax < 1:
        raise invalid_parameter("retmax", retmax, "a positive integer")
    settings = settings or NCBISettings.from_env()

    if use_pub_years:
        if start_year is None or end_year is None:
            raise invalid_parameter(
                "start_year/end_year", (start_year, end_year), "both years when use_pub_years is set"
            )
        if not isinstance(start_year, int) or not isinstance(end_year, int):
            raise invalid_parameter("start_year/end_year", (start_year, end_year), "integers")
        if start_year > end_year:
            raise invalid_parameter("start_year", start_year, f"a year <= end_year ({end_year})")
        queries = [f"{query} AND {year}[Pub Date]" for year in range(start_year, end_year + 1)]
    else:
        queries = [query]

    found: list[str] = []
    for i, q in enumerate(queries):
        if i:
            time.sleep(QUERY_SLEEP)
        found.extend(_perform_search(q, retmax, settings))

    seen: set[str] = set()
    unique = [pmid for pmid in found if not (pmid in seen or seen.add(pmid))]
    logger.info(f"PubMed search returned {len(unique)} unique PMIDs from {len(queries)} queries")
    return unique
