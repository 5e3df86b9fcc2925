"""
Tests for batched retrieval: dispatch, assembly and get_records.
"""

import threading
from dataclasses import replace

import httpx
import pandas as pd
import pytest

from pubmed_records.application import retrieval
from pubmed_records.application.endpoints import ENDPOINTS, Endpoint
from pubmed_records.application.retrieval import assemble, dispatch, get_records
from pubmed_records.core.exceptions import ConfigurationError
from pubmed_records.core.results import Unavailable


def echo_adapter(batch, sleep, settings):
    return pd.DataFrame({"pmid": batch, "size": [len(batch)] * len(batch)})


@pytest.fixture
def echo_endpoint(monkeypatch):
    """Register a test endpoint with batch size 2 that echoes its input."""
    endpoint = Endpoint(
        name="echo",
        adapter=echo_adapter,
        batch_size=2,
        default_sleep=0.0,
        description="Echo",
        columns={"pmid": "PubMed ID (str)", "size": "Batch size (int)"},
        rate_limit="none",
        notes="",
    )
    monkeypatch.setitem(ENDPOINTS, "echo", endpoint)
    return endpoint


# =============================================================================
# dispatch
# =============================================================================


class TestDispatch:
    """Tests for adapter fan-out."""

    def test_results_are_positional(self, settings):
        batches = [["1", "2"], ["3", "4"], ["5"]]
        results = dispatch(batches, echo_adapter, 0, settings, workers=3)
        assert [r["pmid"].tolist() for r in results] == batches

    def test_positional_when_completion_order_differs(self, settings):
        first_may_finish = threading.Event()

        def adapter(batch, sleep, s):
            if batch == ["1"]:
                first_may_finish.wait(timeout=5)
            else:
                first_may_finish.set()
            return pd.DataFrame({"pmid": batch})

        results = dispatch([["1"], ["2"]], adapter, 0, settings, workers=2)
        assert [r["pmid"].tolist() for r in results] == [["1"], ["2"]]

    def test_failure_is_isolated(self, settings):
        def adapter(batch, sleep, s):
            if batch == ["bad"]:
                return Unavailable("down")
            return pd.DataFrame({"pmid": batch})

        results = dispatch([["a"], ["bad"], ["c"]], adapter, 0, settings, workers=2)
        assert isinstance(results[1], Unavailable)
        assert results[0]["pmid"].tolist() == ["a"]
        assert results[2]["pmid"].tolist() == ["c"]

    def test_adapter_exception_becomes_unavailable(self, settings):
        def adapter(batch, sleep, s):
            raise KeyError("boom")

        results = dispatch([["a"]], adapter, 0, settings)
        assert isinstance(results[0], Unavailable)
        assert "KeyError" in results[0].reason

    def test_wrong_return_type(self, settings):
        results = dispatch([["a"]], lambda b, s, st: ["not", "a", "table"], 0, settings)
        assert isinstance(results[0], Unavailable)


# =============================================================================
# assemble
# =============================================================================


class TestAssemble:
    """Tests for result concatenation."""

    def test_concatenates_in_order(self):
        frame = assemble([pd.DataFrame({"pmid": ["1"]}), pd.DataFrame({"pmid": ["2", "3"]})])
        assert frame["pmid"].tolist() == ["1", "2", "3"]
        assert frame.index.tolist() == [0, 1, 2]

    def test_skips_unavailable(self):
        frame = assemble([Unavailable(), pd.DataFrame({"pmid": ["2"]}), Unavailable()])
        assert frame["pmid"].tolist() == ["2"]

    def test_column_union(self):
        frame = assemble([pd.DataFrame({"a": [1]}), pd.DataFrame({"a": [2], "b": ["x"]})])
        assert list(frame.columns) == ["a", "b"]
        assert pd.isna(frame.loc[0, "b"])
        assert frame.loc[1, "b"] == "x"

    def test_all_failed(self):
        frame = assemble([Unavailable(), Unavailable()], columns=["pmid", "year"])
        assert frame.empty
        assert list(frame.columns) == ["pmid", "year"]

    def test_empty_tables_keep_columns(self):
        frame = assemble([pd.DataFrame(columns=["pmid", "text"])], columns=["other"])
        assert frame.empty
        assert list(frame.columns) == ["pmid", "text"]


# =============================================================================
# get_records
# =============================================================================


class TestGetRecords:
    """Tests for the public entry point."""

    def test_batches_cover_input_in_order(self, echo_endpoint, settings):
        ids = [str(i) for i in range(1, 6)]
        frame = get_records(ids, "echo", cores=2, settings=settings)

        assert frame["pmid"].tolist() == ids
        assert frame["size"].tolist() == [2, 2, 2, 2, 1]

    def test_single_identifier(self, echo_endpoint, settings):
        frame = get_records(11250746, "echo", settings=settings)
        assert frame["pmid"].tolist() == ["11250746"]

    def test_partial_failure(self, echo_endpoint, settings, monkeypatch):
        def flaky(batch, sleep, s):
            if "3" in batch:
                return Unavailable("down")
            return echo_adapter(batch, sleep, s)

        monkeypatch.setitem(ENDPOINTS, "echo", replace(echo_endpoint, adapter=flaky))
        frame = get_records(["1", "2", "3", "4", "5"], "echo", settings=settings)
        assert frame["pmid"].tolist() == ["1", "2", "5"]

    def test_all_failed_gives_empty_table(self, echo_endpoint, settings, monkeypatch):
        monkeypatch.setitem(
            ENDPOINTS,
            "echo",
            replace(echo_endpoint, adapter=lambda b, s, st: Unavailable()),
        )
        frame = get_records(["1"], "echo", settings=settings)
        assert frame.empty
        assert list(frame.columns) == ["pmid", "size"]

    def test_default_sleep_and_key(self, echo_endpoint, settings, monkeypatch):
        seen = []

        def recording(batch, sleep, s):
            seen.append((sleep, s.api_key))
            return echo_adapter(batch, sleep, s)

        monkeypatch.setitem(
            ENDPOINTS,
            "echo",
            replace(echo_endpoint, adapter=recording, default_sleep=0.25),
        )
        get_records(["1"], "echo", ncbi_key="SECRET", settings=settings)
        get_records(["1"], "echo", sleep=2.0, settings=settings)

        assert seen == [(0.25, "SECRET"), (2.0, None)]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"pmids": [], "endpoint": "pubmed_abstracts"},
            {"pmids": ["1"], "endpoint": "nonexistent"},
            {"pmids": ["1"], "endpoint": "pubmed_abstracts", "cores": 0},
            {"pmids": ["1"], "endpoint": "pubmed_abstracts", "sleep": -1},
        ],
    )
    def test_configuration_errors_before_network(self, kwargs, monkeypatch):
        def no_dispatch(*args, **kw):
            raise AssertionError("dispatch must not run")

        monkeypatch.setattr(retrieval, "dispatch", no_dispatch)
        with pytest.raises(ConfigurationError):
            get_records(**kwargs)

    def test_entity_annotations_alias(self, make_settings, pubtator_body):
        settings = make_settings(lambda request: httpx.Response(200, text=pubtator_body))
        frame = get_records(["11250746"], "entity-annotations", sleep=0, settings=settings)

        assert list(frame.columns) == list(ENDPOINTS["pubtations"].columns)
        assert frame["pmid"].unique().tolist() == ["11250746"]
        assert set(frame["tiab"]) <= {"title", "abstract"}

    def test_pubtations_batch_size(self, make_settings, pubtator_body):
        requested = []

        def handler(request):
            requested.append(request.url.params["pmids"].split(","))
            return httpx.Response(200, text=pubtator_body)

        ids = [str(i) for i in range(1, 151)]
        get_records(ids, "pubtations", cores=1, sleep=0, settings=make_settings(handler))

        assert [len(r) for r in requested] == [99, 51]
        assert [pmid for batch in requested for pmid in batch] == ids

    def test_pmc_batch_survives_malformed_url(self, make_settings, pmc_tarball):
        good = "https://ftp.ncbi.nlm.nih.gov/pub/pmc/oa_package/08/e0/PMC31119.tar.gz"
        settings = make_settings(lambda request: httpx.Response(200, content=pmc_tarball))
        frame = get_records(["https://[bad", good], "pmc_fulltext", cores=1, sleep=0, settings=settings)

        assert len(frame) == 3
        assert frame["section"].tolist()[0] == "Introduction"
