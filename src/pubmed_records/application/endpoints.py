"""
Endpoint registry.

One table drives both dispatch (adapter, batch size, default sleep) and the
``endpoint_info`` descriptions, so the two cannot drift apart.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from pubmed_records.core.exceptions import ConfigurationError, ErrorContext, invalid_parameter
from pubmed_records.core.results import Unavailable
from pubmed_records.core.settings import NCBISettings
from pubmed_records.sources import icite, pmc, pubmed, pubtator

Adapter = Callable[[list[str], float, NCBISettings], "pd.DataFrame | Unavailable"]

EUTILS_RATE_LIMIT = "NCBI E-utilities: 3/sec without key, 10/sec with key"
BATCH_PARAMETERS = {
    "cores": "parallel workers",
    "sleep": "delay between requests (seconds)",
    "ncbi_key": "optional NCBI API key",
}


@dataclass(frozen=True)
class Endpoint:
    """Everything needed to run and describe one data source."""

    name: str
    adapter: Adapter
    batch_size: int
    default_sleep: float
    description: str
    columns: dict[str, str]
    rate_limit: str
    notes: str
    input: str = "PubMed IDs"
    parameters: dict[str, str] = field(default_factory=lambda: dict(BATCH_PARAMETERS))

    def describe(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "returns": "DataFrame",
            "input": self.input,
            "columns": dict(self.columns),
            "parameters": dict(self.parameters),
            "batch_size": self.batch_size,
            "default_sleep": self.default_sleep,
            "rate_limit": self.rate_limit,
            "notes": self.notes,
        }


ENDPOINTS: dict[str, Endpoint] = {
    endpoint.name: endpoint
    for endpoint in (
        Endpoint(
            name="pubmed_abstracts",
            adapter=pubmed.get_abstracts,
            batch_size=199,
            default_sleep=0.5,
            description="PubMed article metadata and abstracts",
            columns={
                "pmid": "PubMed ID (str)",
                "year": "Publication year (Int64, null when unparseable)",
                "journal": "Journal name (str)",
                "articletitle": "Article title (str)",
                "abstract": "Abstract text, one labelled section per line (str)",
                "annotations": "MeSH terms, chemicals and keywords (list[AnnotationTerm])",
            },
            rate_limit=EUTILS_RATE_LIMIT,
            notes="Primary source of article metadata. Use ncbi_key for higher rate limits.",
        ),
        Endpoint(
            name="pubmed_affiliations",
            adapter=pubmed.get_affiliations,
            batch_size=199,
            default_sleep=0.5,
            description="Author affiliations from PubMed",
            columns={
                "pmid": "PubMed ID (str)",
                "author": "Author name as 'Last, Fore' (str)",
                "affiliation": "Institutional affiliation(s), joined by '; ' (str)",
            },
            rate_limit=EUTILS_RATE_LIMIT,
            notes="One row per author; authors without affiliation have a null affiliation.",
        ),
        Endpoint(
            name="pubmed_references",
            adapter=pubmed.get_references,
            batch_size=199,
            default_sleep=0.5,
            description="Reference lists deposited with PubMed records",
            columns={
                "pmid": "PubMed ID of the citing article (str)",
                "citation": "Citation text (str)",
                "cited_pmid": "PubMed ID of the cited work (str)",
                "cited_pmc": "PMC ID of the cited work (str)",
                "cited_doi": "DOI of the cited work (str)",
            },
            rate_limit=EUTILS_RATE_LIMIT,
            notes="One row per reference; only articles with deposited reference lists contribute rows.",
        ),
        Endpoint(
            name="icites",
            adapter=icite.get_icites,
            batch_size=199,
            default_sleep=icite.DEFAULT_SLEEP,
            description="NIH iCite citation metrics and influence scores",
            columns={
                "pmid": "PubMed ID, join key to pubmed_abstracts (str)",
                "citation_count": "Total citations received (Int64)",
                "relative_citation_ratio": "Field-adjusted citation rate vs NIH baseline (float)",
                "nih_percentile": "Percentile rank vs NIH-funded publications (float)",
                "field_citation_rate": "Expected citation rate of the co-citation field (float)",
                "is_research_article": "Primary research article flag (boolean)",
                "is_clinical": "Clinical article flag (boolean)",
                "provisional": "RCR is provisional due to recent publication (boolean)",
                "citation_net": "Citation edges from and to this article (list[CitationEdge])",
                "cited_by_clin": "PMIDs of clinical articles citing this paper (str)",
                "ref_count": "Number of references listed by iCite (int)",
            },
            rate_limit="Relatively permissive",
            notes=(
                "Join to pubmed_abstracts on pmid for titles and journals. "
                "citation_net enables intra-corpus network analysis."
            ),
        ),
        Endpoint(
            name="pubtations",
            adapter=pubtator.get_pubtations,
            batch_size=99,
            default_sleep=pubtator.DEFAULT_SLEEP,
            description="PubTator3 entity annotations (genes, diseases, chemicals, ...)",
            columns={
                "pmid": "PubMed ID (str)",
                "tiab": "Passage: 'title' or 'abstract' (str)",
                "id": "Annotation ID (str)",
                "text": "Annotated text span (str)",
                "identifier": "Database identifier (str)",
                "type": "Entity type: Gene, Disease, Chemical, Species, Mutation, ... (str)",
                "start": "Start offset in the document text (Int64)",
                "end": "End offset in the document text (Int64)",
            },
            rate_limit="Moderate",
            notes=(
                "One row per annotation. A passage without annotations yields one "
                "placeholder row with null annotation fields."
            ),
        ),
        Endpoint(
            name="pmc_fulltext",
            adapter=pmc.get_pmc_fulltext,
            batch_size=5,
            default_sleep=pmc.DEFAULT_SLEEP,
            description="Full-text article sections from PubMed Central",
            columns={
                "pmid": "PubMed ID (str)",
                "section": "Section heading (str)",
                "text": "Section text content (str)",
            },
            input="Download URLs from pmid_to_ftp()",
            rate_limit="PMC archive: be respectful",
            notes="One row per top-level body section. Not every PMID has open-access full text.",
        ),
    )
}

ENDPOINT_ALIASES = {
    "abstract-metadata": "pubmed_abstracts",
    "affiliations": "pubmed_affiliations",
    "references": "pubmed_references",
    "citation-metrics": "icites",
    "entity-annotations": "pubtations",
    "full-text-sections": "pmc_fulltext",
}


def resolve_endpoint(name: str) -> Endpoint:
    """Look up an endpoint by canonical name or alias."""
    if isinstance(name, str):
        canonical = ENDPOINT_ALIASES.get(name, name)
        if canonical in ENDPOINTS:
            return ENDPOINTS[canonical]
    available = ", ".join(ENDPOINTS)
    raise ConfigurationError(
        f"Unknown endpoint {name!r}. Available: {available}",
        context=ErrorContext(input_value=name, suggestion=f"Use one of: {available}"),
    )


def endpoint_info(endpoint: str | None = None, format: str = "list") -> list[str] | dict[str, Any] | str:
    """
    Describe the available endpoints.

    Args:
        endpoint: Endpoint name; None lists all endpoint names
        format: "list" for Python objects, "json" for a JSON string

    Returns:
        Endpoint names, or a description dict for one endpoint, or either
        serialized as JSON.
    """
    if format not in ("list", "json"):
        raise invalid_parameter("format", format, "'list' or 'json'")

    if endpoint is None:
        names = list(ENDPOINTS)
        if format == "json":
            return json.dumps({"available_endpoints": names}, indent=2)
        return names

    info = resolve_endpoint(endpoint).describe()
    if format == "json":
        return json.dumps(info, indent=2)
    return info
