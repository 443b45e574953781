from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

T = TypeVar("T")


def matches_text(q: str, *values: str | None) -> bool:
    """Case-insensitive substring match used by the in-memory repos."""
    needle = q.lower()
    return any(v is not None and needle in v.lower() for v in values)


def paginate(items: Iterable[T], offset: int, limit: int) -> tuple[list[T], int]:
    materialized = list(items)
    return materialized[offset : offset + limit], len(materialized)
