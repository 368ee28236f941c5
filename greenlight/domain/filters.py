"""Pagination and sorting parameters for list queries.

Sort values are interpolated into ORDER BY, so they are checked twice: once in
``validate_filters`` against the caller's safelist, and again when the column
is compiled. The second check should be unreachable.
"""

import math
from dataclasses import dataclass, field
from typing import Literal

from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE, MAX_PAGE_SIZE
from .exceptions import UnsafeSortParameter
from .validator import Validator, permitted_values

SortDirection = Literal["ASC", "DESC"]


@dataclass(frozen=True)
class Filters:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort: str = "id"
    sort_safelist: tuple[str, ...] = field(default=("id",))

    def sort_column(self) -> str:
        """Return the column to order by, without the descending prefix.

        Raises:
            UnsafeSortParameter: if the sort value is not in the safelist
        """
        if self.sort not in self.sort_safelist:
            raise UnsafeSortParameter(self.sort)
        return self.sort.removeprefix("-")

    def sort_direction(self) -> SortDirection:
        return "DESC" if self.sort.startswith("-") else "ASC"

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Metadata:
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


def validate_filters(v: Validator, f: Filters) -> None:
    v.check(f.page > 0, "page", "must be greater than zero")
    v.check(f.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(f.page_size > 0, "page_size", "must be greater than zero")
    v.check(f.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
    v.check(
        permitted_values(f.sort, *f.sort_safelist), "sort", "invalid sort value"
    )


def compile_sort(f: Filters) -> tuple[str, SortDirection]:
    """Return ``(column, direction)``; only call after ``validate_filters``."""
    return f.sort_column(), f.sort_direction()


def paginate(f: Filters) -> tuple[int, int]:
    """Return ``(limit, offset)``."""
    return f.limit(), f.offset()


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata()

    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )
