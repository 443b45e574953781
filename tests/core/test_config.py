from __future__ import annotations

import pytest

from lms.core.config import load_settings

# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ENV", "LOG_LEVEL", "LOG_JSON", "JWT_TTL_MIN", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.jwt_ttl_min == 24 * 60
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.control_plane_db == "lms_master"


def test_load_settings_normalizes_case_and_whitespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  TEST ")
    monkeypatch.setenv("LOG_LEVEL", " Warning")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "warning"
    assert settings.is_test


@pytest.mark.parametrize("raw", ["1", "true", "YES"])
def test_log_json_truthy_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("LOG_JSON", raw)
    assert load_settings().log_json is True


def test_database_url_for(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db:5432/")
    settings = load_settings()
    assert settings.database_url_for("acme_tenant") == "postgresql+asyncpg://u:p@db:5432/acme_tenant"


def test_database_url_for_requires_server(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError, match="DATABASE_URL"):
        load_settings().database_url_for("acme_tenant")


# ---- invalid values ----


def test_rejects_invalid_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_rejects_invalid_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        load_settings()


def test_rejects_non_integer_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


def test_rejects_non_positive_ttl(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_TTL_MIN", "0")
    with pytest.raises(ValueError, match="JWT_TTL_MIN must be positive"):
        load_settings()


def test_prod_requires_jwt_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValueError, match="JWT_SECRET must be set"):
        load_settings()


def test_prod_with_secret_loads(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("JWT_SECRET", "a-real-secret")
    settings = load_settings()
    assert settings.is_prod
    assert settings.jwt_secret == "a-real-secret"


def test_rejects_empty_control_plane_db(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTROL_PLANE_DB", "  ")
    with pytest.raises(ValueError, match="CONTROL_PLANE_DB"):
        load_settings()
