"""
Identifier coercion and batch partitioning.

Batches are contiguous, ordered slices of the caller's identifier list; the
concatenation of all batches reproduces the input exactly.
"""

from __future__ import annotations

import numbers
from collections.abc import Iterable

from pubmed_records.core.exceptions import ConfigurationError, ErrorContext, invalid_parameter


def coerce_identifiers(
    pmids: str | int | Iterable[str | int],
    *,
    drop_empty: bool = False,
) -> list[str]:
    """
    Normalize caller input to a list of identifier strings.

    Args:
        pmids: A single identifier or an iterable of identifiers
        drop_empty: Remove blank entries instead of keeping them

    Raises:
        ConfigurationError: If the input is empty or holds non-identifier values
    """
    if isinstance(pmids, (str, numbers.Integral)):
        pmids = [pmids]
    if pmids is None:
        raise ConfigurationError("No identifiers supplied")

    identifiers: list[str] = []
    for value in pmids:
        if isinstance(value, bool) or not isinstance(value, (str, numbers.Integral)):
            raise invalid_parameter("pmids", value, "identifier strings or integers")
        # numpy integers format like Python ints once converted
        text = value.strip() if isinstance(value, str) else str(int(value))
        if drop_empty and not text:
            continue
        identifiers.append(text)

    if not identifiers:
        raise ConfigurationError(
            "No identifiers supplied",
            context=ErrorContext(suggestion="Pass at least one PMID, e.g. ['11250746']"),
        )
    return identifiers


def partition(identifiers: list[str], batch_size: int) -> list[list[str]]:
    """Split identifiers into ceil(N / batch_size) contiguous batches."""
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise invalid_parameter("batch_size", batch_size, "a positive integer")
    return [identifiers[i:i + batch_size] for i in range(0, len(identifiers), batch_size)]
