"""Repository encapsulating the page table.

`PageRepository` is the only code that talks to the `page` table. It
returns `Page` objects and translates driver failures into the
exceptions from `wiki.errors`.
"""

import logging

from sqlalchemy import type_coerce
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import NullType
from sqlmodel import Session, select

from . import models
from .errors import MultiplePagesFound, PageNotFound, StoreError

logger = logging.getLogger("wiki.store")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PageRepository:
    """Load and save operations for `Page` rows."""
    def __init__(self, session: Session):
        self.session = session

    def load(self, title: str) -> models.Page:
        """Return the page stored under `title`.

        Raises `PageNotFound` when no row matches and `MultiplePagesFound`
        when more than one does; the latter means the table lost its
        uniqueness constraint and is never treated as a missing page.
        """
        # select columns rather than entities so duplicate rows are not
        # folded together by the identity map; body comes back untyped
        # because older tables store it as text
        body = type_coerce(models.Page.body, NullType()).label("body")
        stmt = select(models.Page.title, body).where(models.Page.title == title)
        try:
            rows = self.session.exec(stmt).all()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("load failed for page %s", title)
            raise StoreError(f"Query: {exc}") from exc
        if not rows:
            raise PageNotFound(title)
        if len(rows) > 1:
            raise MultiplePagesFound(title, len(rows))
        row_title, row_body = rows[0]
        try:
            return models.Page(title=row_title, body=_as_bytes(row_body))
        except (TypeError, ValueError) as exc:
            raise StoreError(f"cannot read body of page {title}: {exc}") from exc

    def save(self, page: models.Page) -> models.Page:
        """Insert or overwrite the row for `page.title`.

        PostgreSQL and SQLite get a single `INSERT ... ON CONFLICT DO
        UPDATE`; other dialects fall back to an ORM merge.
        """
        try:
            insert = _UPSERT_DIALECTS.get(self.session.get_bind().dialect.name)
            if insert is not None:
                stmt = insert(models.Page.__table__).values(title=page.title, body=page.body)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["title"],
                    set_={"body": stmt.excluded.body},
                )
                self.session.connection().execute(stmt)
            else:
                self.session.merge(models.Page(title=page.title, body=page.body))
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("save failed for page %s", page.title)
            raise StoreError(f"Save: {exc}") from exc
        return page


def _as_bytes(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)
