"""Pure domain entities without infrastructure dependencies."""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final

from .constants import (
    ALLOWED_LANGUAGES,
    MAX_GENRES,
    MAX_PASSWORD_BYTES,
    MAX_TEXT_BYTES,
    MIN_MOVIE_YEAR,
    MIN_PASSWORD_BYTES,
)
from .exceptions import InvalidRuntimeFormat
from .validator import EMAIL_RX, Validator, matches, permitted_values, unique

_RUNTIME_RX: Final = re.compile(r"^(-?\d+) mins$")


def format_runtime(minutes: int) -> str:
    """Render a runtime the way clients exchange it, e.g. ``102 mins``."""
    return f"{minutes} mins"


def parse_runtime(value: str) -> int:
    """Parse ``'<minutes> mins'`` into an integer.

    Raises:
        InvalidRuntimeFormat: if the value is not in the expected format
    """
    match = _RUNTIME_RX.match(value)
    if match is None:
        raise InvalidRuntimeFormat()
    minutes = int(match.group(1))
    if not -(2**31) <= minutes < 2**31:
        raise InvalidRuntimeFormat()
    return minutes


def validate_text(v: Validator, key: str, text: str) -> None:
    v.check(text != "", key, "must be provided")
    v.check(
        len(text.encode()) <= MAX_TEXT_BYTES,
        key,
        f"must not be more than {MAX_TEXT_BYTES} bytes long",
    )


def validate_language(v: Validator, language: str) -> None:
    v.check(language != "", "language", "must be provided")
    v.check(
        permitted_values(language, *ALLOWED_LANGUAGES),
        "language",
        f"{language} not an allowed language",
    )


@dataclass
class Movie:
    """A film record protected by optimistic concurrency."""

    id: int | None
    title: str
    year: int
    runtime: int
    genres: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    version: int = 1

    def validate(self, v: Validator) -> None:
        validate_text(v, "title", self.title)

        v.check(self.year != 0, "year", "must be provided")
        v.check(self.year >= MIN_MOVIE_YEAR, "year", "must be greater than 1888")
        v.check(
            self.year <= datetime.now(UTC).year, "year", "must not be in the future"
        )

        v.check(self.runtime != 0, "runtime", "must be provided")
        v.check(self.runtime > 0, "runtime", "must be a positive integer")

        v.check(len(self.genres) >= 1, "genres", "must contain at least 1 genre")
        v.check(
            len(self.genres) <= MAX_GENRES,
            "genres",
            f"must not contain more than {MAX_GENRES} genres",
        )
        v.check(unique(self.genres), "genres", "must not contain duplicate values")


@dataclass
class Category:
    """A category as seen in one language."""

    id: int | None
    title: str
    image: str
    language: str
    is_default: bool = False
    created_at: datetime | None = None
    version: int = 1

    def validate(self, v: Validator) -> None:
        validate_text(v, "title", self.title)
        v.check(self.image != "", "image", "must contain an image")
        validate_language(v, self.language)


@dataclass
class Item:
    """An item of a category, as seen in one language."""

    id: int | None
    category_id: int
    name: str
    image: str
    language: str
    created_at: datetime | None = None
    version: int = 1

    def validate(self, v: Validator) -> None:
        v.check(self.category_id > 0, "category_id", "must be provided")
        validate_text(v, "name", self.name)
        v.check(self.image != "", "image", "must contain an image")
        validate_language(v, self.language)


@dataclass
class User:
    id: int | None
    name: str
    email: str
    password_hash: str = ""
    activated: bool = False
    created_at: datetime | None = None
    version: int = 1

    def validate(self, v: Validator) -> None:
        validate_text(v, "name", self.name)
        validate_email(v, self.email)
        v.check(self.password_hash != "", "password", "must be provided")


def validate_email(v: Validator, email: str) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(matches(email, EMAIL_RX), "email", "must be a valid email address")


def validate_password_plaintext(v: Validator, password: str) -> None:
    size = len(password.encode())
    v.check(password != "", "password", "must be provided")
    v.check(
        size >= MIN_PASSWORD_BYTES,
        "password",
        f"must be at least {MIN_PASSWORD_BYTES} bytes long",
    )
    v.check(
        size <= MAX_PASSWORD_BYTES,
        "password",
        f"must not be more than {MAX_PASSWORD_BYTES} bytes long",
    )
