"""Batch outcome marker shared by the retry wrapper, adapters and dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeGuard


@dataclass(frozen=True, slots=True)
class Unavailable:
    """A fetch or batch that produced no usable data."""

    reason: str = "unavailable"

    def __bool__(self) -> bool:
        return False


def is_unavailable(value: Any) -> TypeGuard[Unavailable]:
    return isinstance(value, Unavailable)
