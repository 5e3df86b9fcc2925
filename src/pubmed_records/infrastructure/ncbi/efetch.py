"""
PubMed EFetch through Bio.Entrez.

One retried fetch serves the abstract, affiliation and reference adapters:
the XML for a batch of PMIDs is downloaded with up to ``MAX_ATTEMPTS``
attempts and parsed into ``PubmedArticle`` elements.
"""

from __future__ import annotations

import logging
import urllib.error
from http.client import HTTPException
from typing import TYPE_CHECKING, Any

from Bio import Entrez

from pubmed_records.core.exceptions import MalformedResponse
from pubmed_records.core.retry import MAX_ATTEMPTS, retry_call
from pubmed_records.infrastructure.http.client import urllib_error
from pubmed_records.sources.normalize import parse_xml

if TYPE_CHECKING:
    from pubmed_records.core.results import Unavailable
    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

SERVICE = "eutils.ncbi.nlm.nih.gov"


def _efetch_xml(pmids: list[str], settings: NCBISettings) -> bytes | str:
    try:
        handle = Entrez.efetch(
            db="pubmed",
            id=",".join(pmids),
            rettype="xml",
            retmode="xml",
            **settings.entrez_params(),
        )
    except (urllib.error.URLError, HTTPException, OSError) as e:
        raise urllib_error(e, service=SERVICE) from e
    try:
        return handle.read()
    except (HTTPException, OSError) as e:
        raise urllib_error(e, service=SERVICE) from e
    finally:
        handle.close()


def parse_pubmed_articles(payload: bytes | str) -> list[Any]:
    """Return the ``PubmedArticle`` elements of an EFetch response."""
    root = parse_xml(payload, source="PubMed EFetch")
    if root.tag != "PubmedArticleSet":
        raise MalformedResponse(f"Unexpected root element <{root.tag}>", source="PubMed EFetch")
    return root.findall(".//PubmedArticle")


def fetch_pubmed_articles(
    pmids: list[str],
    settings: NCBISettings,
    *,
    delay: float,
    attempts: int = MAX_ATTEMPTS,
) -> list[Any] | Unavailable:
    """
    Fetch and parse PubMed records for one batch.

    Args:
        pmids: Batch of PMIDs
        settings: Caller identification, including the API key
        delay: Seconds between failed attempts
        attempts: Maximum number of attempts

    Returns:
        List of PubmedArticle elements, or Unavailable after exhausting retries
    """

    def attempt() -> list[Any]:
        return parse_pubmed_articles(_efetch_xml(pmids, settings))

    articles = retry_call(
        attempt,
        attempts=attempts,
        delay=delay,
        label=f"PubMed EFetch of {len(pmids)} PMIDs",
    )
    if isinstance(articles, list):
        logger.debug(f"EFetch returned {len(articles)} articles for {len(pmids)} PMIDs")
    return articles
