"""
NIH iCite citation metrics adapter.

iCite is queried with comma-joined PMIDs and answers CSV. The service has
shipped two naming conventions for the citation-list fields; both are
mapped onto one schema before anything else looks at the table.
"""

from __future__ import annotations

import io
import logging
import time
from typing import TYPE_CHECKING

import pandas as pd

from pubmed_records.core.exceptions import MalformedResponse, PubMedRecordsError
from pubmed_records.core.results import Unavailable
from pubmed_records.infrastructure.http.client import http_get_text
from pubmed_records.models.records import CitationEdge

if TYPE_CHECKING:
    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

ICITE_URL = "https://icite.od.nih.gov/api/pubs"
DEFAULT_SLEEP = 0.25

FIELD_ALIASES = {
    "_id": "pmid",
    "citedPmids": "references",
    "citedByPmids": "cited_by",
}

KEEP_COLUMNS = (
    "pmid",
    "citation_count",
    "relative_citation_ratio",
    "nih_percentile",
    "field_citation_rate",
    "is_research_article",
    "is_clinical",
    "provisional",
    "citation_net",
    "cited_by_clin",
    "ref_count",
)

INT_COLUMNS = ("citation_count",)
FLOAT_COLUMNS = ("relative_citation_ratio", "nih_percentile", "field_citation_rate")
BOOL_COLUMNS = ("is_research_article", "is_clinical", "provisional")

BOOL_VALUES = {
    "yes": True,
    "true": True,
    "1": True,
    "no": False,
    "false": False,
    "0": False,
}


def normalize_fields(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Rename alias columns onto the canonical schema.

    An alias is only renamed when its canonical column is absent; a present
    but blank ``pmid`` is filled from ``_id``.
    """
    frame = frame.copy()
    if "_id" in frame.columns and "pmid" in frame.columns:
        blank = frame["pmid"].isna() | (frame["pmid"].astype(str).str.strip() == "")
        frame.loc[blank, "pmid"] = frame.loc[blank, "_id"]
    renames = {
        alias: canonical
        for alias, canonical in FIELD_ALIASES.items()
        if alias in frame.columns and canonical not in frame.columns
    }
    return frame.rename(columns=renames)


def split_tokens(value: object) -> list[str]:
    """Whitespace-split identifier list; blank or missing gives no tokens."""
    if not isinstance(value, str):
        return []
    return value.split()


def citation_network(pmid: str, references: object, cited_by: object) -> list[CitationEdge]:
    """Edges for one document: doc -> each reference, each citer -> doc."""
    edges = [CitationEdge(doc_id=pmid, from_pmid=pmid, to_pmid=ref) for ref in split_tokens(references)]
    edges.extend(
        CitationEdge(doc_id=pmid, from_pmid=citer, to_pmid=pmid) for citer in split_tokens(cited_by)
    )
    return edges


def _to_bool(value: object) -> bool | None:
    if not isinstance(value, str):
        return None
    return BOOL_VALUES.get(value.strip().lower())


def parse_icite_csv(text: str) -> pd.DataFrame:
    """Turn an iCite CSV response into the normalized metrics table."""
    try:
        raw = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, na_values=[""])
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise MalformedResponse(f"Unreadable CSV: {e}", source="iCite") from e

    frame = normalize_fields(raw)
    if "pmid" not in frame.columns:
        raise MalformedResponse("No pmid or _id column in response", source="iCite")
    frame = frame[frame["pmid"].notna()].reset_index(drop=True).copy()
    frame["pmid"] = frame["pmid"].str.strip()

    references = frame["references"] if "references" in frame.columns else pd.Series([None] * len(frame))
    cited_by = frame["cited_by"] if "cited_by" in frame.columns else pd.Series([None] * len(frame))
    frame["citation_net"] = pd.Series(
        [citation_network(pmid, refs, citers) for pmid, refs, citers in zip(frame["pmid"], references, cited_by)],
        index=frame.index,
        dtype=object,
    )
    frame["ref_count"] = [len(split_tokens(refs)) for refs in references]

    for column in INT_COLUMNS:
        if column in frame.columns:
            frame[column] = pd.to_numeric(frame[column], errors="coerce").round().astype("Int64")
    for column in FLOAT_COLUMNS:
        if column in frame.columns:
            frame[column] = pd.to_numeric(frame[column], errors="coerce").astype("float64")
    for column in BOOL_COLUMNS:
        if column in frame.columns:
            frame[column] = frame[column].map(_to_bool).astype("boolean")
    frame["ref_count"] = frame["ref_count"].astype("int64")

    return frame[[c for c in KEEP_COLUMNS if c in frame.columns]]


def get_icites(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """Citation metrics and citation network for one batch of PMIDs."""
    params = {"pmids": ",".join(batch), "format": "csv"}
    try:
        with settings.http_client() as client:
            text = http_get_text(client, ICITE_URL, params=params)
        frame = parse_icite_csv(text)
    except PubMedRecordsError as e:
        logger.warning(f"iCite: batch of {len(batch)} PMIDs unavailable: {e}")
        return Unavailable(f"iCite request failed: {e}")
    finally:
        time.sleep(sleep)
    logger.debug(f"iCite: {len(frame)} rows for {len(batch)} PMIDs")
    return frame
