"""Tests for pagination, sorting and list metadata."""

import pytest

from greenlight.domain.constants import MOVIE_SORT_SAFELIST
from greenlight.domain.exceptions import UnsafeSortParameter
from greenlight.domain.filters import (
    Filters,
    Metadata,
    calculate_metadata,
    compile_sort,
    paginate,
    validate_filters,
)
from greenlight.domain.validator import Validator


def _errors(**kwargs) -> dict:
    v = Validator()
    validate_filters(v, Filters(sort_safelist=MOVIE_SORT_SAFELIST, **kwargs))
    return v.errors


def test_page_boundaries():
    assert _errors(page=1) == {}
    assert _errors(page=10_000_000) == {}
    assert _errors(page=0) == {"page": "must be greater than zero"}
    assert _errors(page=10_000_001) == {"page": "must be a maximum of 10 million"}


def test_page_size_boundaries():
    assert _errors(page_size=1) == {}
    assert _errors(page_size=100) == {}
    assert _errors(page_size=0) == {"page_size": "must be greater than zero"}
    assert _errors(page_size=101) == {"page_size": "must be a maximum of 100"}


def test_sort_must_be_in_safelist():
    assert _errors(sort="-year") == {}
    assert _errors(sort="title; DROP TABLE movies") == {"sort": "invalid sort value"}


def test_compile_sort():
    assert compile_sort(Filters(sort="-year", sort_safelist=MOVIE_SORT_SAFELIST)) == (
        "year",
        "DESC",
    )
    assert compile_sort(Filters(sort="title", sort_safelist=MOVIE_SORT_SAFELIST)) == (
        "title",
        "ASC",
    )


def test_unvalidated_sort_is_refused_at_compile_time():
    with pytest.raises(UnsafeSortParameter):
        compile_sort(Filters(sort="password_hash", sort_safelist=MOVIE_SORT_SAFELIST))


def test_paginate():
    assert paginate(Filters(page=1, page_size=20)) == (20, 0)
    assert paginate(Filters(page=3, page_size=5)) == (5, 10)


def test_metadata():
    assert calculate_metadata(0, 1, 20) == Metadata()
    assert calculate_metadata(21, 2, 20) == Metadata(
        current_page=2, page_size=20, first_page=1, last_page=2, total_records=21
    )
    assert calculate_metadata(20, 1, 20).last_page == 1
