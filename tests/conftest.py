"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import io
import json
import tarfile
import time
from collections.abc import Callable

import httpx
import pytest

from pubmed_records.core.settings import NCBISettings

# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Record pacing sleeps instead of waiting."""
    calls: list[float] = []
    monkeypatch.setattr(time, "sleep", lambda seconds: calls.append(seconds))
    return calls


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer NCBI credentials out of the tests."""
    monkeypatch.delenv("NCBI_EMAIL", raising=False)
    monkeypatch.delenv("NCBI_API_KEY", raising=False)


@pytest.fixture
def settings():
    """Settings without network transport (for code paths that never touch HTTP)."""
    return NCBISettings(email="test@example.com")


@pytest.fixture
def make_settings() -> Callable[[Callable[[httpx.Request], httpx.Response]], NCBISettings]:
    """Build settings whose httpx clients answer from ``handler``."""

    def _make(handler, api_key: str | None = None) -> NCBISettings:
        return NCBISettings(
            email="test@example.com",
            api_key=api_key,
            transport=httpx.MockTransport(handler),
        )

    return _make


# ============================================================
# Mock PubMed EFetch Responses
# ============================================================

PUBMED_XML = """<?xml version="1.0" ?>
<!DOCTYPE PubmedArticleSet>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE" Owner="NLM">
      <PMID Version="1">11250746</PMID>
      <Article PubModel="Print">
        <Journal>
          <JournalIssue CitedMedium="Print">
            <PubDate><Year>2001</Year><Month>Mar</Month></PubDate>
          </JournalIssue>
          <Title>Nature genetics</Title>
        </Journal>
        <ArticleTitle>Variation in <i>BRCA1</i> expression.</ArticleTitle>
        <Abstract>
          <AbstractText Label="BACKGROUND">Background: Genes matter.</AbstractText>
          <AbstractText Label="METHODS">Methods: We sequenced tumours. Main Results: Many variants were found.</AbstractText>
        </Abstract>
        <AuthorList CompleteYN="Y">
          <Author ValidYN="Y">
            <LastName>Smith</LastName>
            <ForeName>John</ForeName>
            <AffiliationInfo><Affiliation>Dept of Genetics, Univ A.</Affiliation></AffiliationInfo>
            <AffiliationInfo><Affiliation>Cancer Institute B.</Affiliation></AffiliationInfo>
          </Author>
          <Author ValidYN="Y">
            <LastName>Doe</LastName>
          </Author>
          <Author ValidYN="Y">
            <CollectiveName>Genome Consortium</CollectiveName>
          </Author>
        </AuthorList>
      </Article>
      <ChemicalList>
        <Chemical><NameOfSubstance UI="D004247">DNA</NameOfSubstance></Chemical>
      </ChemicalList>
      <MeshHeadingList>
        <MeshHeading><DescriptorName UI="D006801">Humans</DescriptorName></MeshHeading>
        <MeshHeading><DescriptorName UI="D023281">Genomics</DescriptorName></MeshHeading>
      </MeshHeadingList>
      <KeywordList Owner="NOTNLM"><Keyword>sequencing</Keyword></KeywordList>
    </MedlineCitation>
    <PubmedData>
      <ReferenceList>
        <Reference>
          <Citation>Doe J. Earlier work. J Test. 1999;1:1-2.</Citation>
          <ArticleIdList>
            <ArticleId IdType="pubmed">10000001</ArticleId>
            <ArticleId IdType="pmc">PMC100001</ArticleId>
            <ArticleId IdType="doi">10.1000/earlier</ArticleId>
          </ArticleIdList>
        </Reference>
        <Reference>
          <Citation>Unindexed monograph.</Citation>
        </Reference>
      </ReferenceList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE" Owner="NLM">
      <PMID Version="1">11573492</PMID>
      <Article PubModel="Print">
        <Journal>
          <JournalIssue CitedMedium="Print">
            <PubDate><MedlineDate>2020 Jan-Mar</MedlineDate></PubDate>
          </JournalIssue>
          <Title>The Journal of testing</Title>
        </Journal>
        <ArticleTitle>n/a</ArticleTitle>
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""


@pytest.fixture
def pubmed_xml() -> bytes:
    return PUBMED_XML.encode("utf-8")


# ============================================================
# Mock iCite / PubTator Responses
# ============================================================

ICITE_CSV = (
    "_id,year,title,citation_count,relative_citation_ratio,nih_percentile,"
    "field_citation_rate,is_research_article,is_clinical,provisional,"
    "citedPmids,citedByPmids,cited_by_clin\n"
    "100,2001,Paper A,5,1.5,80.2,3.1,Yes,No,No,200 300,,\n"
    "200,1999,Paper B,12,,,,True,False,False,,100 400,400\n"
)

ICITE_CSV_LEGACY = (
    "pmid,citation_count,references,cited_by\n"
    "100,2,200,\n"
)


@pytest.fixture
def icite_csv() -> str:
    return ICITE_CSV


@pytest.fixture
def icite_csv_legacy() -> str:
    return ICITE_CSV_LEGACY


def _annotation(ann_id: str, text: str, identifier: str | None, kind: str, offset: int, length: int) -> dict:
    infons = {"type": kind}
    if identifier is not None:
        infons["identifier"] = identifier
    return {
        "id": ann_id,
        "text": text,
        "infons": infons,
        "locations": [{"offset": offset, "length": length}],
    }


PUBTATOR_DOCUMENT = {
    "_id": "11250746|None",
    "id": "11250746",
    "passages": [
        {"infons": {"type": "title"}, "offset": 0, "text": "Variation in expression.", "annotations": []},
        {
            "infons": {"type": "abstract"},
            "offset": 25,
            "text": "BRCA1 is linked to breast cancer.",
            "annotations": [
                _annotation("1", "BRCA1", "672", "Gene", 12, 5),
                _annotation("2", "breast cancer", "MESH:D001943", "Disease", 44, 13),
                _annotation("3", "tumour", None, "Disease", 60, 6),
            ],
        },
    ],
}


@pytest.fixture
def pubtator_document() -> dict:
    return json.loads(json.dumps(PUBTATOR_DOCUMENT))


@pytest.fixture
def pubtator_body(pubtator_document) -> str:
    """Current PubTator3 export shape: documents wrapped in a PubTator3 key."""
    return json.dumps({"PubTator3": [pubtator_document]})


# ============================================================
# Mock PMC Archives
# ============================================================

JATS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<article>
  <front>
    <article-meta>
      <article-id pub-id-type="pmc">PMC31119</article-id>
      <article-id pub-id-type="pmid">11250746</article-id>
    </article-meta>
  </front>
  <body>
    <sec><title>Introduction</title><p>Genes matter.</p><p>Further work is needed.</p></sec>
    <sec><p>Untitled section text.</p></sec>
    <sec><title>Methods</title><sec><title>Sampling</title><p>We sampled.</p></sec></sec>
  </body>
</article>
"""


def build_tarball(members: dict[str, bytes]) -> bytes:
    """Create an in-memory .tar.gz with the given members."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def jats_xml() -> bytes:
    return JATS_XML.encode("utf-8")


@pytest.fixture
def pmc_tarball(jats_xml) -> bytes:
    return build_tarball(
        {
            "PMC31119/gb-2001-2-3-research0007.nxml": jats_xml,
            "PMC31119/figure1.jpg": b"\xff\xd8\xff",
        }
    )


@pytest.fixture
def make_tarball() -> Callable[[dict[str, bytes]], bytes]:
    return build_tarball
