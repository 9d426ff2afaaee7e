"""Offset pagination for list endpoints.

Out-of-range query values are clamped, never rejected: ``page < 1`` becomes 1
and pages too far out for a database offset are pulled back to ``MAX_PAGE``,
``page_size < 1`` falls back to the default and anything above the maximum is
capped.
"""

from dataclasses import dataclass
from typing import Any, List

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# keeps the row offset within a signed 64-bit integer
MAX_PAGE = (2 ** 63 - 1) // MAX_PAGE_SIZE


@dataclass
class Pagination:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def normalize(self) -> "Pagination":
        if self.page < 1:
            self.page = 1
        if self.page > MAX_PAGE:
            self.page = MAX_PAGE
        if self.page_size < 1:
            self.page_size = DEFAULT_PAGE_SIZE
        if self.page_size > MAX_PAGE_SIZE:
            self.page_size = MAX_PAGE_SIZE
        return self

    @property
    def offset(self) -> int:
        self.normalize()
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        self.normalize()
        return self.page_size


def total_pages(total_items: int, page_size: int) -> int:
    if page_size < 1:
        return 0
    pages = total_items // page_size
    if total_items % page_size:
        pages += 1
    return pages


@dataclass
class Page:
    data: List[Any]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @classmethod
    def build(cls, items: List[Any], pagination: Pagination, total_items: int) -> "Page":
        pagination.normalize()
        return cls(
            data=list(items),
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total_items,
            total_pages=total_pages(total_items, pagination.page_size),
        )
