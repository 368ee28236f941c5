"""Field-level validation that collects errors instead of raising."""

import re
from collections.abc import Hashable, Iterable
from typing import Any, Final

from .exceptions import ValidationFailed

EMAIL_RX: Final = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class Validator:
    """Collects one error message per field; the first failure wins."""

    def __init__(self) -> None:
        self.errors: dict[str, Any] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        if key not in self.errors:
            self.errors[key] = message

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_error(key, message)

    def raise_if_invalid(self) -> None:
        """Raise ValidationFailed carrying the collected errors, if any."""
        if not self.valid():
            raise ValidationFailed(self.errors)


def permitted_values(value: Any, *permitted: Any) -> bool:
    return value in permitted


def matches(value: str, rx: re.Pattern[str]) -> bool:
    return rx.fullmatch(value) is not None


def unique(values: Iterable[Hashable]) -> bool:
    items = list(values)
    return len(items) == len(set(items))
