"""Scoped, expiring credentials.

Only the SHA-256 digest of a token is ever stored. The plaintext is handed to
the user once, at creation time.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .constants import SCOPE_ACTIVATION, SCOPE_AUTHENTICATION, TOKEN_LENGTHS
from .exceptions import UnrecognizedScope
from .validator import Validator


@dataclass
class Token:
    plaintext: str
    hash: bytes
    user_id: int
    expiry: datetime
    scope: str


def hash_plaintext(plaintext: str) -> bytes:
    return hashlib.sha256(plaintext.encode()).digest()


def token_length(scope: str) -> int:
    try:
        return TOKEN_LENGTHS[scope]
    except KeyError:
        raise UnrecognizedScope(scope) from None


def generate_token(user_id: int, ttl: timedelta, scope: str) -> Token:
    """Create a token whose plaintext length is fixed by its scope.

    Args:
        user_id: Owner of the token
        ttl: Lifetime added to the current time to get the expiry
        scope: SCOPE_ACTIVATION or SCOPE_AUTHENTICATION

    Raises:
        UnrecognizedScope: if scope is not a declared scope
        RuntimeError: if the encoded random bytes are shorter than required
    """
    length = token_length(scope)

    random_bytes = secrets.token_bytes(length)
    encoded = base64.b32encode(random_bytes).decode("ascii").rstrip("=")
    if len(encoded) < length:
        raise RuntimeError("generated token is shorter than the required length")
    plaintext = encoded[:length]

    return Token(
        plaintext=plaintext,
        hash=hash_plaintext(plaintext),
        user_id=user_id,
        expiry=datetime.now(UTC) + ttl,
        scope=scope,
    )


def validate_token_plaintext(v: Validator, plaintext: str, scope: str) -> None:
    v.check(plaintext != "", "token", "must be provided")
    if scope == SCOPE_ACTIVATION:
        v.check(
            len(plaintext) == TOKEN_LENGTHS[SCOPE_ACTIVATION],
            "token",
            "must be 6 characters long",
        )
    elif scope == SCOPE_AUTHENTICATION:
        v.check(
            len(plaintext) == TOKEN_LENGTHS[SCOPE_AUTHENTICATION],
            "token",
            "must be 32 characters long",
        )
    else:
        v.add_error("token", "scope not defined")
