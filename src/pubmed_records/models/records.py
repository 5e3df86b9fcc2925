"""
Normalized record types, one per endpoint.

Each record flattens to a table row with ``to_row()``; nested per-article
collections (annotation terms, citation edges) stay typed lists inside the
row so one article keeps one row.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

AnnotationKind = Literal["MeSH", "Chemistry", "Keyword"]
TextScope = Literal["title", "abstract"]


@dataclass(frozen=True)
class AnnotationTerm:
    """A MeSH descriptor, chemical substance or author keyword."""

    pmid: str
    type: AnnotationKind
    form: str


@dataclass(frozen=True)
class CitationEdge:
    """Directed citation ``from_pmid`` -> ``to_pmid`` seen from ``doc_id``."""

    doc_id: str
    from_pmid: str
    to_pmid: str


@dataclass(frozen=True)
class AbstractRecord:
    pmid: str
    year: int | None = None
    journal: str | None = None
    articletitle: str | None = None
    abstract: str | None = None
    annotations: list[AnnotationTerm] = field(default_factory=list)

    def to_row(self) -> dict[str, Any]:
        return {
            "pmid": self.pmid,
            "year": self.year,
            "journal": self.journal,
            "articletitle": self.articletitle,
            "abstract": self.abstract,
            "annotations": list(self.annotations),
        }


@dataclass(frozen=True)
class AffiliationRecord:
    pmid: str
    author: str | None = None
    affiliation: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReferenceRecord:
    pmid: str
    citation: str | None = None
    cited_pmid: str | None = None
    cited_pmc: str | None = None
    cited_doi: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EntityAnnotation:
    """One PubTator entity mention; all but pmid/tiab null for a placeholder."""

    pmid: str
    tiab: TextScope
    id: str | None = None
    text: str | None = None
    identifier: str | None = None
    type: str | None = None
    start: int | None = None
    end: int | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SectionRecord:
    pmid: str | None
    section: str | None
    text: str | None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IdConversion:
    pmid: str
    pmcid: str | None = None
    doi: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)
