"""
PubTator3 entity annotation adapter.

Fetches BioC JSON for a batch of PMIDs and emits one row per annotated
entity mention in the title and abstract passages.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import TYPE_CHECKING, Any

import pandas as pd

from pubmed_records.core.exceptions import MalformedResponse, PubMedRecordsError
from pubmed_records.core.results import Unavailable
from pubmed_records.infrastructure.http.client import http_get_text
from pubmed_records.models.records import EntityAnnotation
from pubmed_records.sources.normalize import records_to_frame

if TYPE_CHECKING:
    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

PUBTATOR_EXPORT_URL = "https://www.ncbi.nlm.nih.gov/research/pubtator3-api/publications/export/biocjson"
DEFAULT_SLEEP = 1.0

SCOPES = ("title", "abstract")

ANNOTATION_COLUMNS = {
    "pmid": "object",
    "tiab": "object",
    "id": "object",
    "text": "object",
    "identifier": "object",
    "type": "object",
    "start": "Int64",
    "end": "Int64",
}


def parse_location(location: str | None) -> tuple[int | None, int | None]:
    """``"offset,length"`` -> (start, end); non-digit, non-comma characters are ignored."""
    if location is None:
        return None, None
    cleaned = re.sub(r"[^\d,]", "", location)
    parts = cleaned.split(",")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None, None
    start = int(parts[0])
    return start, start + int(parts[1])


def _render_location(annotation: dict[str, Any]) -> str | None:
    locations = annotation.get("locations") or []
    if not locations or not isinstance(locations[0], dict):
        return None
    first = locations[0]
    return f"{first.get('offset', '')},{first.get('length', '')}"


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def load_documents(body: str) -> list[dict[str, Any]]:
    """
    Extract BioC documents from any of the response shapes PubTator has used.

    Accepted: ``{"PubTator3": [...]}``, a single document, a list of
    documents, or newline-delimited documents.
    """
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        payload = []
        for line in body.splitlines():
            if not line.strip():
                continue
            try:
                payload.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise MalformedResponse(f"Invalid JSON line: {e}", source="PubTator3") from e

    if isinstance(payload, dict) and "PubTator3" in payload:
        payload = payload["PubTator3"]
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise MalformedResponse(f"Unexpected payload type {type(payload).__name__}", source="PubTator3")

    documents = []
    for item in payload:
        if isinstance(item, dict) and "PubTator3" in item:
            documents.extend(d for d in item["PubTator3"] if isinstance(d, dict))
        elif isinstance(item, dict):
            documents.append(item)
    return documents


def document_pmid(document: dict[str, Any]) -> str | None:
    for key in ("id", "pmid"):
        if document.get(key):
            return str(document[key])
    if document.get("_id"):
        return str(document["_id"]).split("|")[0]
    return None


def _scoped_passages(document: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Map title/abstract to their passage, by infons type and then position."""
    passages = [p for p in document.get("passages") or [] if isinstance(p, dict)]
    scoped: dict[str, dict[str, Any]] = {}
    for passage in passages:
        kind = str((passage.get("infons") or {}).get("type", "")).lower()
        if kind in SCOPES and kind not in scoped:
            scoped[kind] = passage
    for scope, passage in zip(SCOPES, passages):
        if scope not in scoped and passage not in scoped.values():
            scoped[scope] = passage
    return scoped


def parse_document(document: dict[str, Any]) -> list[EntityAnnotation]:
    pmid = document_pmid(document)
    if pmid is None:
        return []
    scoped = _scoped_passages(document)

    rows: list[EntityAnnotation] = []
    for scope in SCOPES:
        annotations = [
            a for a in (scoped.get(scope, {}).get("annotations") or []) if isinstance(a, dict)
        ]
        if not annotations:
            rows.append(EntityAnnotation(pmid=pmid, tiab=scope))
            continue
        for annotation in annotations:
            infons = annotation.get("infons") or {}
            start, end = parse_location(_render_location(annotation))
            rows.append(
                EntityAnnotation(
                    pmid=pmid,
                    tiab=scope,
                    id=_as_text(annotation.get("id")),
                    text=_as_text(annotation.get("text")),
                    identifier=_as_text(infons.get("identifier")),
                    type=_as_text(infons.get("type")),
                    start=start,
                    end=end,
                )
            )
    return rows


def parse_biocjson(body: str) -> pd.DataFrame:
    rows = [row for document in load_documents(body) for row in parse_document(document)]
    return records_to_frame(rows, ANNOTATION_COLUMNS)


def get_pubtations(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """Entity annotations (genes, diseases, chemicals, ...) for one batch of PMIDs."""
    try:
        with settings.http_client() as client:
            body = http_get_text(client, PUBTATOR_EXPORT_URL, params={"pmids": ",".join(batch)})
        frame = parse_biocjson(body)
    except PubMedRecordsError as e:
        logger.warning(f"PubTator3: batch of {len(batch)} PMIDs unavailable: {e}")
        return Unavailable(f"PubTator3 request failed: {e}")
    finally:
        time.sleep(sleep)
    logger.debug(f"PubTator3: {len(frame)} annotation rows for {len(batch)} PMIDs")
    return frame
