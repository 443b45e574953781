from __future__ import annotations

import pytest

from lms.services.pagination import MAX_PAGE_SIZE, Page, PageRequest


@pytest.mark.parametrize(
    "page,limit,expected",
    [
        (None, None, PageRequest(1, 20)),
        (0, -5, PageRequest(1, 20)),
        (3, 10, PageRequest(3, 10)),
        (1, 10_000, PageRequest(1, MAX_PAGE_SIZE)),
    ],
)
def test_page_request_of(page, limit, expected: PageRequest) -> None:
    assert PageRequest.of(page, limit) == expected


def test_default_limit_override() -> None:
    assert PageRequest.of(None, None, default_limit=10).limit == 10


def test_offset() -> None:
    assert PageRequest(page=3, limit=10).offset == 20


@pytest.mark.parametrize("total,pages", [(0, 0), (1, 1), (20, 1), (21, 2)])
def test_total_pages(total: int, pages: int) -> None:
    assert Page(items=[], page=1, limit=20, total=total).total_pages == pages
