"""SQLModel data models.

The wiki has a single table, `page`, holding one row per title.
"""

import re

from sqlmodel import Field, SQLModel

# Legal page titles. Routing and settings validation both match against it.
TITLE_PATTERN = re.compile(r"[a-zA-Z0-9]+")


class Page(SQLModel, table=True):
    """A wiki document.

    Fields:
    - `title`: unique short identifier, also the primary key
    - `body`: raw page content as bytes
    """
    __tablename__ = "page"

    title: str = Field(primary_key=True, max_length=255)
    body: bytes = b""

    @property
    def text(self) -> str:
        """Body decoded for display; invalid UTF-8 is replaced."""
        return self.body.decode("utf-8", errors="replace")
