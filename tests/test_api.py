"""Tests for service-level endpoints and application wiring."""

from fastapi.testclient import TestClient

from greenlight.config import Settings
from greenlight.main import create_app
from greenlight.rate_limiting import RateLimiter


def test_healthcheck(client: TestClient):
    response = client.get("/v1/healthcheck")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "available"
    assert set(body["system_info"]) == {"environment", "version"}


def test_openapi_lists_every_route(client: TestClient):
    paths = client.get("/openapi.json").json()["paths"]

    assert {
        "/v1/healthcheck",
        "/v1/movies",
        "/v1/movies/{movie_id}",
        "/v1/categories",
        "/v1/categories/{category_id}",
        "/v1/items",
        "/v1/items/{item_id}",
        "/v1/items/untranslated/{language}",
        "/v1/users",
        "/v1/users/activated",
        "/v1/tokens/authentication",
    } <= set(paths)


def test_each_app_gets_its_own_limiter(app):
    other = create_app()

    assert isinstance(app.state.rate_limiter, RateLimiter)
    assert app.state.rate_limiter is not other.state.rate_limiter


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LIMITER_RPS", "5")
    monkeypatch.setenv("LIMITER_BURST", "10")
    monkeypatch.setenv("ATOMIC_TRANSLATABLE_INSERTS", "false")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/greenlight")

    settings = Settings()

    assert settings.limiter_rps == 5
    assert settings.limiter_burst == 10
    assert settings.atomic_translatable_inserts is False
    assert not settings.is_sqlite


def test_settings_defaults():
    settings = Settings(_env_file=None)

    assert settings.port == 4000
    assert settings.db_timeout_seconds == 3.0
    assert settings.limiter_rps == 2.0
    assert settings.limiter_burst == 4
    assert settings.default_language == "en"


def test_debug_setting_keeps_tracebacks_off_the_wire(monkeypatch):
    monkeypatch.setattr("greenlight.config.settings.debug", True)

    assert create_app().debug is False
