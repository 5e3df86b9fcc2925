"""
Batched retrieval: partition, dispatch, assemble.

Usage:
    from pubmed_records import get_records

    abstracts = get_records(["11250746", "11573492"], "pubmed_abstracts", cores=2)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

import pandas as pd

from pubmed_records.application.endpoints import Adapter, resolve_endpoint
from pubmed_records.core.batching import coerce_identifiers, partition
from pubmed_records.core.exceptions import invalid_parameter
from pubmed_records.core.results import Unavailable
from pubmed_records.core.settings import NCBISettings

logger = logging.getLogger(__name__)

DEFAULT_CORES = 3

BatchResult = pd.DataFrame | Unavailable


def _run_batch(
    adapter: Adapter,
    index: int,
    batch: list[str],
    sleep: float,
    settings: NCBISettings,
) -> BatchResult:
    """Run one adapter call; any crash is confined to this batch."""
    try:
        result = adapter(batch, sleep, settings)
    except Exception as e:
        logger.exception(f"Batch {index + 1} ({len(batch)} items) failed")
        return Unavailable(f"batch {index + 1} raised {type(e).__name__}: {e}")
    if not isinstance(result, (pd.DataFrame, Unavailable)):
        logger.error(f"Batch {index + 1} returned {type(result).__name__}")
        return Unavailable(f"batch {index + 1} returned {type(result).__name__}")
    return result


def dispatch(
    batches: Sequence[list[str]],
    adapter: Adapter,
    sleep: float,
    settings: NCBISettings,
    workers: int = 1,
) -> list[BatchResult]:
    """
    Apply ``adapter`` to every batch.

    Results are positional: ``results[i]`` belongs to ``batches[i]`` whatever
    the completion order. ``workers > 1`` runs batches on a thread pool.
    """
    if workers <= 1 or len(batches) <= 1:
        return [_run_batch(adapter, i, batch, sleep, settings) for i, batch in enumerate(batches)]

    with ThreadPoolExecutor(max_workers=min(workers, len(batches))) as executor:
        futures = [
            executor.submit(_run_batch, adapter, i, batch, sleep, settings)
            for i, batch in enumerate(batches)
        ]
        return [future.result() for future in futures]


def assemble(results: Iterable[BatchResult], columns: Sequence[str] | None = None) -> pd.DataFrame:
    """
    Concatenate successful batch tables in order.

    Columns are the union across batches, in first-seen order; cells a
    batch lacks are null. With no successful batch the result is an empty
    table with ``columns``.
    """
    tables = [r for r in results if isinstance(r, pd.DataFrame)]

    union: list[str] = []
    for table in tables:
        union.extend(c for c in table.columns if c not in union)
    if not union:
        union = list(columns or [])

    non_empty = [t for t in tables if not t.empty]
    if not non_empty:
        if tables:
            return tables[0].iloc[0:0].reindex(columns=union)
        return pd.DataFrame(columns=union)
    if len(non_empty) == 1:
        return non_empty[0].reset_index(drop=True).reindex(columns=union)
    combined = pd.concat(non_empty, ignore_index=True, sort=False)
    return combined.reindex(columns=union)


def get_records(
    pmids,
    endpoint: str,
    cores: int = DEFAULT_CORES,
    sleep: float | None = None,
    ncbi_key: str | None = None,
    settings: NCBISettings | None = None,
) -> pd.DataFrame:
    """
    Retrieve records for ``pmids`` from one endpoint.

    Args:
        pmids: PMIDs (or download URLs for pmc_fulltext)
        endpoint: Endpoint name, see ``endpoint_info()``
        cores: Number of parallel workers
        sleep: Seconds to pause after each request; endpoint default if None
        ncbi_key: NCBI API key used for this call only
        settings: Caller identification; defaults to the environment

    Returns:
        One table covering every batch that succeeded. Failed batches are
        logged and contribute no rows; if all fail the table is empty.

    Raises:
        ConfigurationError: On empty input, unknown endpoint or bad cores/sleep,
            before any network activity
    """
    identifiers = coerce_identifiers(pmids)
    source = resolve_endpoint(endpoint)
    if isinstance(cores, bool) or not isinstance(cores, int) or cores < 1:
        raise invalid_parameter("cores", cores, "a positive integer")
    if sleep is None:
        sleep = source.default_sleep
    elif sleep < 0:
        raise invalid_parameter("sleep", sleep, "a non-negative number of seconds")

    settings = (settings or NCBISettings.from_env()).with_api_key(ncbi_key)
    batches = partition(identifiers, source.batch_size)
    logger.info(
        f"{source.name}: {len(identifiers)} items in {len(batches)} batches, {min(cores, len(batches))} workers"
    )

    results = dispatch(batches, source.adapter, sleep, settings, workers=cores)
    failed = sum(isinstance(r, Unavailable) for r in results)
    if failed:
        logger.warning(f"{source.name}: {failed}/{len(batches)} batches unavailable")

    return assemble(results, columns=list(source.columns))
