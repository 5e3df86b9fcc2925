"""
Tests for shared parsing helpers.
"""

import pytest

from pubmed_records.core.exceptions import MalformedResponse
from pubmed_records.models.records import AffiliationRecord, IdConversion
from pubmed_records.sources.normalize import (
    clean_na,
    element_text,
    find_text,
    parse_xml,
    records_to_frame,
)


class TestCleanNa:
    """Tests for missing-value placeholders."""

    @pytest.mark.parametrize("value", [None, "", " ", "   ", "NA", "n/a", "n/a."])
    def test_missing(self, value):
        assert clean_na(value) is None

    @pytest.mark.parametrize("value", ["N/A study", "na", "Nature"])
    def test_kept(self, value):
        assert clean_na(value) == value


class TestXmlHelpers:
    """Tests for XML text extraction."""

    def test_nested_text(self):
        root = parse_xml("<a><t>Variation in <i>BRCA1</i> expression.</t></a>", source="test")
        assert find_text(root, "./t") == "Variation in BRCA1 expression."

    def test_missing_element(self):
        root = parse_xml("<a/>", source="test")
        assert find_text(root, "./t") is None
        assert element_text(None) is None

    def test_entity_expansion_rejected(self):
        payload = (
            '<?xml version="1.0"?><!DOCTYPE x [<!ENTITY a "aaaa">]>'
            "<x>&a;&a;</x>"
        )
        with pytest.raises(MalformedResponse):
            parse_xml(payload, source="test")

    def test_invalid(self):
        with pytest.raises(MalformedResponse, match="test"):
            parse_xml("<a>", source="test")


class TestRecordsToFrame:
    """Tests for table construction."""

    def test_column_order(self):
        frame = records_to_frame(
            [AffiliationRecord(pmid="1", author="Doe")],
            {"pmid": "object", "author": "object", "affiliation": "object"},
        )
        assert list(frame.columns) == ["pmid", "author", "affiliation"]
        assert frame.loc[0, "affiliation"] is None

    def test_empty(self):
        frame = records_to_frame([], {"pmid": "object", "pmcid": "object", "doi": "object"})
        assert frame.empty
        assert list(frame.columns) == ["pmid", "pmcid", "doi"]

    def test_typed_columns(self):
        frame = records_to_frame([IdConversion(pmid="1")], {"pmid": "object", "year": "Int64"})
        assert str(frame["year"].dtype) == "Int64"
