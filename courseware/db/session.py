"""Database engine and session utilities.

This module centralises the creation of the SQLAlchemy engine used by the
request handlers.  It also offers a lightweight SQLite fallback for local
development when a PostgreSQL instance is unavailable.
"""

from __future__ import annotations

import logging
import os
import time
from time import perf_counter
from typing import Any, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from courseware.core.config import normalize_database_url, settings

logger = logging.getLogger(__name__)


def _connection_parameters(url: str) -> tuple[str, dict[str, Any]]:
    """Return the URL to hand to ``create_engine`` and its ``connect_args``."""

    url = normalize_database_url(url)
    try:
        parsed_url = make_url(url)
    except Exception:
        return url, {}

    connect_args: dict[str, Any] = {}
    if parsed_url.drivername.startswith("sqlite"):
        # Request handlers and background work may share a connection across threads.
        connect_args["check_same_thread"] = False

    return parsed_url.render_as_string(hide_password=False), connect_args


def _should_enable_sqlite_fallback() -> bool:
    environment = (getattr(settings, "ENVIRONMENT", "development") or "").lower()
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return environment in {"development", "local"}


SQLITE_FALLBACK_URL = "sqlite:///./courseware_local.db"

# These globals are populated by ``configure_database``.
engine: Engine
SessionLocal: sessionmaker

_QUERY_STARTS = "courseware.query_starts"


def _statement_preview(statement: Any, limit: int = 200) -> str:
    flat = " ".join(str(statement).split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


def _start_query_timer(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault(_QUERY_STARTS, []).append(perf_counter())


def _install_slow_query_logger(target: Engine, threshold_ms: int) -> None:
    """Warn about statements slower than ``threshold_ms`` (0 disables)."""

    if threshold_ms <= 0 or event.contains(target, "before_cursor_execute", _start_query_timer):
        return

    def _report_slow_query(conn, cursor, statement, parameters, context, executemany):
        starts = conn.info.get(_QUERY_STARTS)
        if not starts:
            return
        elapsed_ms = (perf_counter() - starts.pop()) * 1000.0
        if elapsed_ms >= threshold_ms:
            logger.warning("Slow SQL (%.1f ms) - %s", elapsed_ms, _statement_preview(statement))

    event.listen(target, "before_cursor_execute", _start_query_timer)
    event.listen(target, "after_cursor_execute", _report_slow_query)


def _ping(target: Engine) -> None:
    with target.connect() as connection:
        connection.execute(text("SELECT 1"))


def _verify_database_connection(target: Engine) -> None:
    """Ping *target*, retrying server databases with a doubling delay."""

    attempts = 1 if target.dialect.name == "sqlite" else max(settings.DATABASE_CONNECTION_MAX_RETRIES, 1)
    delay = max(settings.DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS, 0.1)

    for attempt in range(1, attempts + 1):
        try:
            _ping(target)
            return
        except (OperationalError, OSError) as exc:
            if attempt == attempts:
                raise
            logger.warning("Database ping %s/%s failed: %s. Retrying in %.1f s.", attempt, attempts, exc, delay)
            time.sleep(delay)
            delay = min(delay * 2, 30.0)


def configure_database(database_url: str | None = None, *, allow_fallback: bool = True) -> None:
    """Initialise the engine and session factory.

    ``database_url`` defaults to the environment configuration.  When the
    connection attempt fails locally we transparently fall back to a SQLite
    database so the API can boot without a running PostgreSQL instance.
    """

    global engine, SessionLocal

    target_url, connect_args = _connection_parameters(str(database_url or settings.DATABASE_URL))

    logger.info("Configuring database: %s", make_url(target_url).render_as_string(hide_password=True))

    candidate_engine = create_engine(
        target_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    _install_slow_query_logger(candidate_engine, settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS)

    try:
        _verify_database_connection(candidate_engine)
    except (OperationalError, OSError) as exc:
        if allow_fallback and _should_enable_sqlite_fallback():
            logger.warning(
                "Could not reach database '%s' (%s). Falling back to SQLite.",
                make_url(target_url).render_as_string(hide_password=True),
                exc,
            )
            candidate_engine.dispose()
            configure_database(SQLITE_FALLBACK_URL, allow_fallback=False)
            return

        logger.error("Database connection failed: %s", exc)
        raise

    engine = candidate_engine
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Initialise the engine at import time so the rest of the application can use
# it immediately.
configure_database()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
