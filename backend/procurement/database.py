import logging
import os
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from procurement.config import settings

logger = logging.getLogger("procurement.database")

db_url = str(settings.database_url)
is_postgres = db_url.startswith("postgresql")


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _engine_options(url: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """Engine kwargs plus the pool settings reported in the startup log."""

    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            options["poolclass"] = StaticPool
        return options, {"pool": "sqlite"}

    if not url.startswith("postgresql"):
        return {}, {"pool": "default"}

    options = {
        "connect_args": {"connect_timeout": _env_int("DB_CONNECT_TIMEOUT_SECONDS", 10)},
        "pool_pre_ping": True,
    }
    if os.getenv("DB_USE_NULL_POOL", "").strip().lower() in {"1", "true", "yes", "on"}:
        options["poolclass"] = NullPool
        return options, {"pool": "null"}

    sizing = {
        "pool_size": _env_int("DB_POOL_SIZE", 5),
        "max_overflow": _env_int("DB_MAX_OVERFLOW", 10),
        "pool_timeout": _env_int("DB_POOL_TIMEOUT_SECONDS", 30),
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800),
    }
    options.update(sizing)
    return options, {"pool": "queue", **sizing}


_options, POOL_CONFIG = _engine_options(db_url)

engine = create_engine(db_url, future=True, **_options)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        timeout_ms = _env_int("DB_STATEMENT_TIMEOUT_MS", 5000) if is_postgres else 0
        if timeout_ms > 0:
            try:
                db.execute(text(f"SET statement_timeout = {timeout_ms}"))
            except SQLAlchemyError as e:
                logger.warning("statement_timeout_failed", extra={"error": str(e)})
                db.rollback()
        yield db
    finally:
        db.close()
