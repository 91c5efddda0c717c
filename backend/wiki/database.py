"""Database engine and helpers.

The engine is built from `Settings.DATABASE_URL` by the application
factory and stored on `app.state`; nothing here holds a module-level
connection. `get_session` hands each request its own `Session` drawn
from the engine's pool.
"""

import logging

from fastapi import Request
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .errors import StartupError

logger = logging.getLogger("wiki.db")


def create_db_engine(url: str, pool_size: int = 5) -> Engine:
    """Create a pooled engine for `url`.

    SQLite connections are shared across the server's worker threads, so
    `check_same_thread` is disabled; an in-memory SQLite database is kept
    on a single static connection so every session sees the same data.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_size=pool_size, pool_pre_ping=True)


def check_connection(engine: Engine) -> None:
    """Run a trivial query, raising `StartupError` if the database is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("database ping failed: %s", exc)
        raise StartupError(f"cannot reach database: {exc}") from exc


def create_db_and_tables(engine: Engine) -> None:
    """Create the `page` table if it does not exist yet.

    Deployments managed with `run_migrations.py` already have the table;
    `create_all` leaves existing tables alone, so a table created without
    a key on `title` is given a unique index here.
    """
    try:
        SQLModel.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise StartupError(f"cannot create tables: {exc}") from exc
    _ensure_unique_title(engine)


def _ensure_unique_title(engine: Engine) -> None:
    """Add a unique index on `page.title` to tables that lack one.

    Saving relies on `ON CONFLICT (title)`. If the table already holds
    duplicate titles the index cannot be built; that is logged and left
    for an operator, since loading those titles reports the duplicates.
    """
    try:
        insp = inspect(engine)
        keyed = (
            insp.get_pk_constraint("page").get("constrained_columns") == ["title"]
            or any(uc["column_names"] == ["title"] for uc in insp.get_unique_constraints("page"))
            or any(ix.get("unique") and ix["column_names"] == ["title"] for ix in insp.get_indexes("page"))
        )
    except SQLAlchemyError as exc:
        raise StartupError(f"cannot inspect page table: {exc}") from exc
    if keyed:
        return
    try:
        with engine.begin() as conn:
            conn.exec_driver_sql("CREATE UNIQUE INDEX IF NOT EXISTS ux_page_title ON page (title)")
    except SQLAlchemyError as exc:
        logger.warning("cannot add unique index on page.title: %s", exc)
        return
    logger.info("added unique index on page.title")


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session bound to the application's engine
    and closes it when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
