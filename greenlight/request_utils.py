"""Utilities for handling FastAPI requests."""

from fastapi import Request

from .config import settings
from .domain.entities import validate_language
from .domain.validator import Validator


def get_client_ip(request: Request) -> str:
    """Identify the client, for rate limiting and logs.

    ``X-Forwarded-For`` and ``X-Real-IP`` are only honoured when the direct
    peer is listed in ``settings.trusted_proxies``; anyone can set them, so
    otherwise the peer address is the client. Returns "unknown" when there is
    no peer at all.
    """
    peer = request.client.host if request.client and request.client.host else None
    if peer is None or peer not in settings.trusted_proxies:
        return peer or "unknown"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the original client
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return peer


def is_api_request(request: Request) -> bool:
    """Check if request is to a versioned API endpoint."""
    return str(request.url.path).startswith("/v1/")


def read_language(request: Request) -> tuple[str, Validator]:
    """Read the requested language from the Accept-Language header.

    Only the primary tag of the first entry is used (``ar-EG;q=0.9`` -> ``ar``).

    Returns:
        The language code and a validator holding any language error
    """
    header = request.headers.get("Accept-Language", "")
    first = header.split(",")[0].split(";")[0].strip()
    language = first.split("-")[0].lower() if first else settings.default_language

    v = Validator()
    validate_language(v, language)
    return language, v
