"""Tests for field validation and entity rules."""

from datetime import UTC, datetime

import pytest

from greenlight.domain.entities import (
    Category,
    Item,
    Movie,
    format_runtime,
    parse_runtime,
    validate_password_plaintext,
)
from greenlight.domain.exceptions import InvalidRuntimeFormat, ValidationFailed
from greenlight.domain.validator import (
    EMAIL_RX,
    Validator,
    matches,
    permitted_values,
    unique,
)


def test_first_error_per_field_wins():
    v = Validator()
    v.add_error("title", "must be provided")
    v.add_error("title", "must not be more than 500 bytes long")

    assert not v.valid()
    assert v.errors == {"title": "must be provided"}


def test_check_only_records_failures():
    v = Validator()
    v.check(True, "year", "never recorded")
    assert v.valid()

    v.check(False, "year", "must be provided")
    assert v.errors == {"year": "must be provided"}


def test_raise_if_invalid_carries_errors():
    v = Validator()
    v.raise_if_invalid()

    v.add_error("genres", "must not contain duplicate values")
    with pytest.raises(ValidationFailed) as exc_info:
        v.raise_if_invalid()
    assert exc_info.value.errors == {"genres": "must not contain duplicate values"}


def test_helpers():
    assert permitted_values("en", "ar", "en")
    assert not permitted_values("fr", "ar", "en")
    assert unique(["drama", "war"])
    assert not unique(["drama", "drama"])
    assert matches("alice@example.com", EMAIL_RX)
    assert not matches("alice@", EMAIL_RX)
    assert not matches("alice@example.com trailing", EMAIL_RX)


def _movie(**overrides) -> Movie:
    fields = {
        "id": None,
        "title": "Casablanca",
        "year": 1942,
        "runtime": 102,
        "genres": ["drama", "romance"],
    }
    fields.update(overrides)
    return Movie(**fields)


def test_valid_movie_has_no_errors():
    v = Validator()
    _movie().validate(v)
    assert v.valid()


@pytest.mark.parametrize(
    ("overrides", "field", "message"),
    [
        ({"title": ""}, "title", "must be provided"),
        ({"title": "x" * 501}, "title", "must not be more than 500 bytes long"),
        ({"year": 0}, "year", "must be provided"),
        ({"year": 1887}, "year", "must be greater than 1888"),
        ({"runtime": 0}, "runtime", "must be provided"),
        ({"runtime": -5}, "runtime", "must be a positive integer"),
        ({"genres": []}, "genres", "must contain at least 1 genre"),
        (
            {"genres": ["a", "b", "c", "d", "e", "f"]},
            "genres",
            "must not contain more than 5 genres",
        ),
        ({"genres": ["drama", "drama"]}, "genres", "must not contain duplicate values"),
    ],
)
def test_movie_rules(overrides, field, message):
    v = Validator()
    _movie(**overrides).validate(v)
    assert v.errors[field] == message


def test_movie_year_boundaries():
    v = Validator()
    _movie(year=1888, title="x" * 500).validate(v)
    assert v.valid()

    v = Validator()
    _movie(year=datetime.now(UTC).year + 1).validate(v)
    assert v.errors == {"year": "must not be in the future"}


def test_title_limit_counts_bytes_not_characters():
    v = Validator()
    # 250 two-byte characters is exactly 500 bytes
    _movie(title="é" * 250).validate(v)
    assert v.valid()

    v = Validator()
    _movie(title="é" * 251).validate(v)
    assert "title" in v.errors


def test_category_and_item_rules():
    v = Validator()
    Category(id=None, title="", image="", language="fr").validate(v)
    assert v.errors == {
        "title": "must be provided",
        "image": "must contain an image",
        "language": "fr not an allowed language",
    }

    v = Validator()
    Item(id=None, category_id=0, name="Apple", image="a.png", language="ar").validate(v)
    assert v.errors == {"category_id": "must be provided"}


def test_password_rules():
    v = Validator()
    validate_password_plaintext(v, "short")
    assert v.errors == {"password": "must be at least 8 bytes long"}

    v = Validator()
    validate_password_plaintext(v, "x" * 73)
    assert v.errors == {"password": "must not be more than 72 bytes long"}


def test_runtime_wire_format():
    assert format_runtime(102) == "102 mins"
    assert parse_runtime("102 mins") == 102

    for bad in ["102", "102 minutes", "mins", "abc mins", " 102 mins"]:
        with pytest.raises(InvalidRuntimeFormat):
            parse_runtime(bad)
