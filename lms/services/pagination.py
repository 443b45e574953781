from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 1
    limit: int = 20

    @staticmethod
    def of(page: int | None, limit: int | None, default_limit: int = 20) -> PageRequest:
        # Non-positive or missing values fall back to defaults
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else default_limit
        return PageRequest(page=page, limit=min(limit, MAX_PAGE_SIZE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
