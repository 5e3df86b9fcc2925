"""
PubMed Records - batched retrieval of PubMed, iCite, PubTator3 and PMC data.

Usage:
    from pubmed_records import get_records, pmid_to_ftp, search_pubmed

    pmids = search_pubmed("ethnobotany", 2010, 2012, use_pub_years=True)
    abstracts = get_records(pmids, "pubmed_abstracts", cores=3)
    metrics = get_records(pmids, "icites")
    urls = pmid_to_ftp(pmids)
    sections = get_records(urls["url"].tolist(), "pmc_fulltext")

Every call returns a pandas DataFrame keyed by ``pmid``. Upstream failures
are retried and then dropped batch by batch; only invalid input raises
(ConfigurationError).
"""

from .application.endpoints import ENDPOINTS, endpoint_info
from .application.retrieval import assemble, dispatch, get_records
from .core.exceptions import (
    ConfigurationError,
    MalformedResponse,
    PubMedRecordsError,
    TransientUpstreamFailure,
)
from .core.results import Unavailable
from .core.settings import NCBISettings
from .infrastructure.ncbi.idconv import pmid_to_ftp, pmid_to_pmc
from .infrastructure.ncbi.search import search_pubmed

__version__ = "0.1.0"

__all__ = [
    "ENDPOINTS",
    "ConfigurationError",
    "MalformedResponse",
    "NCBISettings",
    "PubMedRecordsError",
    "TransientUpstreamFailure",
    "Unavailable",
    "assemble",
    "dispatch",
    "endpoint_info",
    "get_records",
    "pmid_to_ftp",
    "pmid_to_pmc",
    "search_pubmed",
]
