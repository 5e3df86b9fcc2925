"""Shared parsing and table-building helpers for the endpoint adapters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import pandas as pd
from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from pubmed_records.core.exceptions import MalformedResponse

MISSING_TOKENS = frozenset({"", " ", "NA", "n/a", "n/a."})


class Row(Protocol):
    def to_row(self) -> dict[str, Any]: ...


def clean_na(value: str | None) -> str | None:
    """Turn missing-value placeholders into None."""
    if value is None:
        return None
    if value.strip() == "" or value in MISSING_TOKENS:
        return None
    return value


def element_text(element: Any) -> str | None:
    """Concatenated text of an element and its descendants, or None."""
    if element is None:
        return None
    text = "".join(element.itertext())
    return text if text else None


def find_text(element: Any, path: str) -> str | None:
    """``element_text`` of the first match of ``path``."""
    return element_text(element.find(path))


def parse_xml(payload: str | bytes, *, source: str) -> Any:
    """Parse an XML document with defusedxml, raising MalformedResponse."""
    try:
        return ET.fromstring(payload)
    except (ET.ParseError, DefusedXmlException) as e:
        raise MalformedResponse(f"Invalid XML: {e}", source=source) from e


def records_to_frame(
    records: Iterable[Row],
    columns: Mapping[str, str],
) -> pd.DataFrame:
    """
    Build a DataFrame with a stable column order and dtypes.

    Args:
        records: Objects exposing ``to_row()``
        columns: Column name -> pandas dtype ("object" keeps values as-is)
    """
    frame = pd.DataFrame([record.to_row() for record in records], columns=list(columns))
    for name, dtype in columns.items():
        if dtype != "object":
            frame[name] = frame[name].astype(dtype)
    return frame
