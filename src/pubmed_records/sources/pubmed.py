"""
PubMed EFetch adapters: abstracts, author affiliations and references.

All three share one retried EFetch per batch and differ only in how each
``PubmedArticle`` element is flattened.
"""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING, Any

import pandas as pd

from pubmed_records.core.results import Unavailable, is_unavailable
from pubmed_records.infrastructure.ncbi.efetch import fetch_pubmed_articles
from pubmed_records.models.records import (
    AbstractRecord,
    AffiliationRecord,
    AnnotationTerm,
    ReferenceRecord,
)
from pubmed_records.sources.normalize import clean_na, element_text, find_text, records_to_frame

if TYPE_CHECKING:
    from collections.abc import Callable

    from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

ABSTRACT_COLUMNS = {
    "pmid": "object",
    "year": "Int64",
    "journal": "object",
    "articletitle": "object",
    "abstract": "object",
    "annotations": "object",
}
AFFILIATION_COLUMNS = {"pmid": "object", "author": "object", "affiliation": "object"}
REFERENCE_COLUMNS = {
    "pmid": "object",
    "citation": "object",
    "cited_pmid": "object",
    "cited_pmc": "object",
    "cited_doi": "object",
}

# 1-3 capitalized or all-caps words followed by a colon, at the start or after a sentence
SECTION_TITLE = re.compile(r"(^|\.\s+)(([A-Z][a-z]*|[A-Z]+)(\s([A-Z][a-z]*|[A-Z]+)){0,2}):")

ANNOTATION_PATHS: tuple[tuple[str, str], ...] = (
    ("MeSH", ".//DescriptorName"),
    ("Chemistry", ".//NameOfSubstance"),
    ("Keyword", ".//Keyword"),
)


# =============================================================================
# Field extraction
# =============================================================================


def article_pmid(article: Any) -> str | None:
    return clean_na(find_text(article, ".//MedlineCitation/PMID"))


def extract_year(article: Any) -> int | None:
    """Publication year from PubDate/Year, falling back to MedlineDate."""
    raw = find_text(article, ".//PubDate/Year")
    if raw is None:
        raw = find_text(article, ".//PubDate/MedlineDate")
    if raw is None:
        return None
    year = re.sub(r" .+", "", raw.strip())
    year = re.sub(r"-.+", "", year)
    return int(year) if year.isdigit() else None


def reformat_abstract(abstract: str | None) -> str | None:
    """
    Put each labelled abstract section (``Methods:`` etc.) on its own line.

    The sentence-ending period before a title is replaced by the line break,
    so an abstract opening with a title starts with a newline.
    """
    if abstract is None:
        return None
    return SECTION_TITLE.sub(r"\n\2:", abstract)


def extract_annotations(article: Any, pmid: str) -> list[AnnotationTerm]:
    terms = []
    for kind, path in ANNOTATION_PATHS:
        for node in article.findall(path):
            form = clean_na(element_text(node))
            if form is not None:
                terms.append(AnnotationTerm(pmid=pmid, type=kind, form=form))
    return terms


def parse_abstract(article: Any) -> AbstractRecord | None:
    pmid = article_pmid(article)
    if pmid is None:
        return None

    journal = find_text(article, ".//Journal/Title")
    if journal is None:
        journal = find_text(article, ".//Title")

    parts = [element_text(node) or "" for node in article.findall(".//Abstract/AbstractText")]
    abstract = " ".join(parts) if parts else None

    return AbstractRecord(
        pmid=pmid,
        year=extract_year(article),
        journal=clean_na(journal),
        articletitle=clean_na(find_text(article, ".//ArticleTitle")),
        abstract=reformat_abstract(clean_na(abstract)),
        annotations=extract_annotations(article, pmid),
    )


def format_author(author: Any) -> str | None:
    """``"Last, Fore"``; a single present part alone; None when both are missing."""
    names = [
        clean_na(find_text(author, "./LastName")),
        clean_na(find_text(author, "./ForeName")),
    ]
    present = [n for n in names if n]
    return ", ".join(present) if present else None


def parse_affiliations(article: Any) -> list[AffiliationRecord]:
    pmid = article_pmid(article)
    if pmid is None:
        return []
    rows = []
    for author in article.findall(".//Author"):
        affiliations = [
            a for a in (clean_na(element_text(node)) for node in author.findall(".//Affiliation")) if a
        ]
        rows.append(
            AffiliationRecord(
                pmid=pmid,
                author=format_author(author),
                affiliation="; ".join(affiliations) if affiliations else None,
            )
        )
    return rows


def parse_references(article: Any) -> list[ReferenceRecord]:
    pmid = article_pmid(article)
    if pmid is None:
        return []
    rows = []
    for reference in article.findall(".//Reference"):
        ids: dict[str, str | None] = {"pubmed": None, "pmc": None, "doi": None}
        for article_id in reference.findall(".//ArticleId"):
            id_type = article_id.get("IdType")
            if id_type in ids:
                ids[id_type] = clean_na(element_text(article_id))
        rows.append(
            ReferenceRecord(
                pmid=pmid,
                citation=clean_na(find_text(reference, ".//Citation")),
                cited_pmid=ids["pubmed"],
                cited_pmc=ids["pmc"],
                cited_doi=ids["doi"],
            )
        )
    return rows


# =============================================================================
# Adapters
# =============================================================================


def _run(
    batch: list[str],
    sleep: float,
    settings: NCBISettings,
    flatten: Callable[[list[Any]], list[Any]],
    columns: dict[str, str],
    name: str,
) -> pd.DataFrame | Unavailable:
    articles = fetch_pubmed_articles(batch, settings, delay=sleep)
    time.sleep(sleep)
    if is_unavailable(articles):
        logger.warning(f"{name}: batch of {len(batch)} PMIDs unavailable")
        return articles
    frame = records_to_frame(flatten(articles), columns)
    logger.debug(f"{name}: {len(frame)} rows from {len(articles)} articles")
    return frame


def _abstracts(articles: list[Any]) -> list[AbstractRecord]:
    return [r for r in (parse_abstract(a) for a in articles) if r is not None]


def _affiliations(articles: list[Any]) -> list[AffiliationRecord]:
    return [row for a in articles for row in parse_affiliations(a)]


def _references(articles: list[Any]) -> list[ReferenceRecord]:
    return [row for a in articles for row in parse_references(a)]


def get_abstracts(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """One row per article: pmid, year, journal, title, abstract, annotations."""
    return _run(batch, sleep, settings, _abstracts, ABSTRACT_COLUMNS, "pubmed_abstracts")


def get_affiliations(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """One row per author: pmid, author, affiliation."""
    return _run(batch, sleep, settings, _affiliations, AFFILIATION_COLUMNS, "pubmed_affiliations")


def get_references(batch: list[str], sleep: float, settings: NCBISettings) -> pd.DataFrame | Unavailable:
    """One row per cited reference: pmid, citation, cited_pmid, cited_pmc, cited_doi."""
    return _run(batch, sleep, settings, _references, REFERENCE_COLUMNS, "pubmed_references")
