"""
PMC open-access full-text adapter.

Input items are tarball URLs (see ``pmid_to_ftp``). Each archive is
downloaded into a temporary directory, its first XML member is parsed as
JATS, and every top-level body section becomes one row.
"""

from __future__ import annotations

import logging
import re
import tarfile
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from pubmed_records.core.exceptions import MalformedResponse, PubMedRecordsError
from pubmed_records.core.results import Unavailable
from pubmed_records.infrastructure.http.client import download
from pubmed_records.models.records import SectionRecord
from pubmed_records.sources.normalize import clean_na, element_text, find_text, parse_xml, records_to_frame

if TYPE_CHECKING:
    import httpx

    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

DEFAULT_SLEEP = 1.0

SECTION_COLUMNS = {"pmid": "object", "section": "object", "text": "object"}


def reflow_section_text(text: str) -> str:
    """Break lines where a lowercase run runs straight into an uppercase letter."""
    return re.sub(r"([a-z]+)([A-Z])", r"\1\n\2", text)


def parse_jats_sections(payload: bytes | str) -> list[SectionRecord]:
    """One record per ``body/sec``; no body or no sections gives no records."""
    root = parse_xml(payload, source="PMC JATS")
    pmid = clean_na(find_text(root, ".//article-meta//article-id[@pub-id-type='pmid']"))
    body = root.find(".//body")
    if body is None:
        return []
    records = []
    for sec in body.findall("./sec"):
        text = element_text(sec)
        records.append(
            SectionRecord(
                pmid=pmid,
                section=find_text(sec, "./title"),
                text=reflow_section_text(text) if text is not None else None,
            )
        )
    return records


def read_first_xml(archive: Path) -> bytes:
    """Bytes of the first member whose name ends in ``xml``."""
    try:
        with tarfile.open(archive, "r:*") as tar:
            members = [m for m in tar.getmembers() if m.isfile() and m.name.endswith("xml")]
            if not members:
                raise MalformedResponse("Archive holds no XML file", source=archive.name)
            fh = tar.extractfile(members[0])
            if fh is None:
                raise MalformedResponse(f"Cannot read {members[0].name}", source=archive.name)
            with fh:
                return fh.read()
    except (tarfile.TarError, EOFError, OSError) as e:
        raise MalformedResponse(f"Unreadable archive: {e}", source=archive.name) from e


def fetch_sections(client: httpx.Client, url: str, workdir: Path) -> list[SectionRecord]:
    archive = download(client, url, workdir / "article.tar.gz")
    try:
        return parse_jats_sections(read_first_xml(archive))
    finally:
        archive.unlink(missing_ok=True)


def get_pmc_fulltext(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """
    Section text of open-access articles.

    A failed item is logged and skipped; the batch is Unavailable only
    when every item failed.
    """
    rows: list[SectionRecord] = []
    failures = 0
    with tempfile.TemporaryDirectory(prefix="pubmed-records-") as tmp, settings.http_client() as client:
        workdir = Path(tmp)
        for url in batch:
            try:
                rows.extend(fetch_sections(client, url, workdir))
            except PubMedRecordsError as e:
                failures += 1
                logger.warning(f"PMC full text: skipping {url}: {e}")
            time.sleep(sleep)

    if batch and failures == len(batch):
        return Unavailable(f"All {failures} PMC downloads failed")
    return records_to_frame(rows, SECTION_COLUMNS)
