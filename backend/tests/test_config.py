import pytest
from pydantic import ValidationError

from procurement.config import Settings


def test_cors_origins_accept_comma_and_json_lists(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example/, http://b.example")
    assert Settings().cors_origins == ["http://a.example", "http://b.example"]

    monkeypatch.setenv("CORS_ORIGINS", '["http://c.example"]')
    assert Settings().cors_origins == ["http://c.example"]


def test_cors_origins_default_to_localhost_outside_production(monkeypatch):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    assert "http://localhost:5173" in Settings().cors_origins


def test_production_requires_explicit_cors(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://svc@db.internal:5432/procurement")
    monkeypatch.delenv("CORS_ORIGINS", raising=False)

    with pytest.raises(ValidationError, match="CORS_ORIGINS"):
        Settings()


def test_production_refuses_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("CORS_ORIGINS", "https://procurement.example")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./prod.db")

    with pytest.raises(ValidationError, match="SQLite"):
        Settings()


def test_postgres_urls_use_psycopg(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://svc@db.internal:5432/procurement")
    assert Settings().database_url == "postgresql+psycopg://svc@db.internal:5432/procurement"


def test_api_prefix_is_normalized(monkeypatch):
    monkeypatch.setenv("API_V1_STR", "api/v1/")
    assert Settings().api_prefix == "/api/v1"


def test_docs_default_follows_environment(monkeypatch):
    monkeypatch.delenv("ENABLE_DOCS", raising=False)
    assert Settings().enable_docs is True

    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("CORS_ORIGINS", "https://procurement.example")
    monkeypatch.setenv("DATABASE_URL", "postgresql://svc@db.internal:5432/procurement")
    assert Settings().enable_docs is False


def test_engine_options_for_sqlite_and_postgres(monkeypatch):
    from sqlalchemy.pool import NullPool, StaticPool

    from procurement.database import _engine_options

    options, pool = _engine_options("sqlite+pysqlite:///:memory:")
    assert options["poolclass"] is StaticPool
    assert options["connect_args"] == {"check_same_thread": False}
    assert pool == {"pool": "sqlite"}

    monkeypatch.delenv("DB_USE_NULL_POOL", raising=False)
    monkeypatch.setenv("DB_POOL_SIZE", "3")
    monkeypatch.setenv("DB_CONNECT_TIMEOUT_SECONDS", "4")
    options, pool = _engine_options("postgresql+psycopg://svc@db.internal/procurement")
    assert options["pool_size"] == 3
    assert options["pool_pre_ping"] is True
    assert options["connect_args"] == {"connect_timeout": 4}
    assert pool["pool"] == "queue"
    assert pool["max_overflow"] == 10

    monkeypatch.setenv("DB_USE_NULL_POOL", "true")
    options, pool = _engine_options("postgresql+psycopg://svc@db.internal/procurement")
    assert options["poolclass"] is NullPool
    assert "pool_size" not in options
    assert pool == {"pool": "null"}
