"""Domain business rules and constants."""

from typing import Final

# Business Rules - Core domain constraints
MAX_TEXT_BYTES: Final = 500
MIN_MOVIE_YEAR: Final = 1888
MAX_GENRES: Final = 5

ALLOWED_LANGUAGES: Final = ("ar", "en")
DEFAULT_LANGUAGE: Final = "en"

MAX_PAGE: Final = 10_000_000
MAX_PAGE_SIZE: Final = 100
DEFAULT_PAGE_SIZE: Final = 20

MIN_PASSWORD_BYTES: Final = 8
MAX_PASSWORD_BYTES: Final = 72

# Token scopes and plaintext lengths
SCOPE_ACTIVATION: Final = "activation"
SCOPE_AUTHENTICATION: Final = "authentication"
TOKEN_LENGTHS: Final = {
    SCOPE_ACTIVATION: 6,
    SCOPE_AUTHENTICATION: 32,
}

MOVIE_SORT_SAFELIST: Final = (
    "id",
    "title",
    "year",
    "runtime",
    "-id",
    "-title",
    "-year",
    "-runtime",
)
