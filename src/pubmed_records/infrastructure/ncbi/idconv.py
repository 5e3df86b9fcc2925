"""
PMID -> PMCID/DOI conversion and open-access download URL resolution.

Usage:
    from pubmed_records import get_records, pmid_to_ftp

    urls = pmid_to_ftp(["11250746", "11573492"])
    sections = get_records(urls["url"].tolist(), "pmc_fulltext")
"""

from __future__ import annotations

import logging
import re
import time

import httpx
import pandas as pd

from pubmed_records.core.batching import coerce_identifiers, partition
from pubmed_records.core.exceptions import invalid_parameter
from pubmed_records.core.results import is_unavailable
from pubmed_records.core.retry import retry_call
from pubmed_records.core.settings import NCBISettings
from pubmed_records.infrastructure.http.client import http_get_text
from pubmed_records.models.records import IdConversion
from pubmed_records.sources.normalize import clean_na, parse_xml, records_to_frame

logger = logging.getLogger(__name__)

IDCONV_URL = "https://www.ncbi.nlm.nih.gov/pmc/utils/idconv/v1.0/"
OA_URL = "https://www.ncbi.nlm.nih.gov/pmc/utils/oa/oa.fcgi"

DEFAULT_BATCH_SIZE = 200
DEFAULT_SLEEP = 0.5
CONVERSION_ATTEMPTS = 5
RETRY_DELAY = 1.0

# OA service: 10 requests/second with an API key, 3 without
OA_SLEEP_WITH_KEY = 0.11
OA_SLEEP_WITHOUT_KEY = 0.34

CONVERSION_COLUMNS = {"pmid": "object", "pmcid": "object", "doi": "object"}
URL_COLUMNS = {**CONVERSION_COLUMNS, "url": "object"}


def _sort_by_pmid(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.sort_values(
        "pmid",
        key=lambda s: pd.to_numeric(s, errors="coerce"),
        kind="stable",
        ignore_index=True,
    )


def parse_idconv(payload: str | bytes) -> list[IdConversion]:
    """One conversion per ``record`` element of an ID converter response."""
    root = parse_xml(payload, source="PMC ID converter")
    conversions = []
    for record in root.iter("record"):
        pmid = clean_na(record.get("pmid")) or clean_na(record.get("requested-id"))
        if pmid is None:
            continue
        conversions.append(
            IdConversion(
                pmid=pmid,
                pmcid=clean_na(record.get("pmcid")),
                doi=clean_na(record.get("doi")),
            )
        )
    return conversions


def parse_oa_link(payload: str | bytes) -> str | None:
    """Tarball URL from an OA service response, rewritten from ftp:// to https://."""
    root = parse_xml(payload, source="PMC OA service")
    link = root.find(".//link[@format='tgz']")
    if link is None:
        return None
    href = clean_na(link.get("href"))
    if href is None:
        return None
    return re.sub(r"^ftp://", "https://", href)


def _convert_batch(
    client: httpx.Client,
    batch: list[str],
    settings: NCBISettings,
) -> list[IdConversion]:
    params = {"ids": ",".join(batch), "idtype": "pmid", "format": "xml", **settings.entrez_params()}
    return parse_idconv(http_get_text(client, IDCONV_URL, params=params))


def _validate(batch_size: int, sleep: float) -> None:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise invalid_parameter("batch_size", batch_size, "a positive integer")
    if sleep is None or sleep < 0:
        raise invalid_parameter("sleep", sleep, "a non-negative number of seconds")


def pmid_to_pmc(
    pmids,
    batch_size: int = DEFAULT_BATCH_SIZE,
    sleep: float = DEFAULT_SLEEP,
    settings: NCBISettings | None = None,
    ncbi_key: str | None = None,
) -> pd.DataFrame:
    """
    Convert PMIDs to PMC IDs and DOIs with the NCBI ID converter.

    Args:
        pmids: PMIDs as strings or integers; blank entries are dropped
        batch_size: PMIDs per converter request
        sleep: Seconds to wait before each converter request
        settings: Caller identification; defaults to the environment
        ncbi_key: API key overriding the one in ``settings``

    Returns:
        DataFrame with columns pmid, pmcid, doi ordered by PMID. PMIDs not in
        PMC have a null pmcid. Empty when every batch failed.

    Raises:
        ConfigurationError: On empty input or invalid batch_size/sleep
    """
    identifiers = coerce_identifiers(pmids, drop_empty=True)
    _validate(batch_size, sleep)
    settings = (settings or NCBISettings.from_env()).with_api_key(ncbi_key)

    conversions: list[IdConversion] = []
    failed = 0
    with settings.http_client() as client:
        for batch in partition(identifiers, batch_size):
            time.sleep(sleep)
            result = retry_call(
                lambda batch=batch: _convert_batch(client, batch, settings),
                attempts=CONVERSION_ATTEMPTS,
                delay=RETRY_DELAY,
                label=f"PMC ID conversion of {len(batch)} PMIDs",
            )
            if is_unavailable(result):
                failed += 1
                continue
            conversions.extend(result)

    if failed:
        logger.warning(f"ID conversion: {failed} batch(es) failed and were dropped")
    return _sort_by_pmid(records_to_frame(conversions, CONVERSION_COLUMNS))


def resolve_download_url(
    client: httpx.Client,
    pmcid: str,
    settings: NCBISettings,
) -> str | None:
    """Look up the open-access tarball URL of one PMC article."""
    params = {"id": pmcid, **settings.entrez_params()}
    result = retry_call(
        lambda: parse_oa_link(http_get_text(client, OA_URL, params=params)),
        attempts=CONVERSION_ATTEMPTS,
        delay=RETRY_DELAY,
        label=f"OA lookup for {pmcid}",
    )
    if is_unavailable(result):
        return None
    return result


def pmid_to_ftp(
    pmids,
    batch_size: int = DEFAULT_BATCH_SIZE,
    sleep: float = DEFAULT_SLEEP,
    settings: NCBISettings | None = None,
    ncbi_key: str | None = None,
) -> pd.DataFrame:
    """
    Resolve PMIDs to open-access full-text download URLs.

    Runs ``pmid_to_pmc`` and then queries the PMC OA service once per PMCID.
    Only articles with a resolved URL are returned.

    Returns:
        DataFrame with columns pmid, pmcid, doi, url ordered by PMID
    """
    settings = (settings or NCBISettings.from_env()).with_api_key(ncbi_key)
    ids = pmid_to_pmc(pmids, batch_size=batch_size, sleep=sleep, settings=settings)

    oa_sleep = OA_SLEEP_WITH_KEY if settings.has_api_key else OA_SLEEP_WITHOUT_KEY
    urls: dict[str, str | None] = {}
    pmcids = [p for p in ids["pmcid"].tolist() if isinstance(p, str) and p]
    with settings.http_client() as client:
        for pmcid in dict.fromkeys(pmcids):
            time.sleep(oa_sleep)
            urls[pmcid] = resolve_download_url(client, pmcid, settings)

    ids["url"] = ids["pmcid"].map(urls).astype(object)
    resolved = ids[ids["url"].notna()].reset_index(drop=True)
    logger.info(f"Resolved {len(resolved)} download URLs for {len(ids)} converted PMIDs")
    return _sort_by_pmid(resolved.reindex(columns=list(URL_COLUMNS)))
