import pytest
from sqlalchemy import text
from sqlmodel import Session

from wiki.database import create_db_and_tables, create_db_engine
from wiki.errors import MultiplePagesFound, PageNotFound, StoreError
from wiki.models import Page
from wiki.repositories import PageRepository


def test_save_then_load_returns_same_page(pages):
    pages.save(Page(title="Test", body=b"hello"))
    loaded = pages.load("Test")
    assert loaded.title == "Test"
    assert loaded.body == b"hello"


def test_save_overwrites_existing_title(pages):
    pages.save(Page(title="Notes", body=b"first"))
    pages.save(Page(title="Notes", body=b"second"))
    assert pages.load("Notes").body == b"second"
    count = pages.session.connection().execute(text("SELECT COUNT(*) FROM page WHERE title = :t"), {"t": "Notes"}).scalar_one()
    assert count == 1


def test_body_bytes_survive_unchanged(pages):
    raw = "café ☃\n<b>raw</b>".encode("utf-8") + b"\xff"
    pages.save(Page(title="Bytes", body=raw))
    page = pages.load("Bytes")
    assert page.body == raw
    assert page.text.startswith("café")


def test_load_missing_page_raises_not_found(pages):
    with pytest.raises(PageNotFound) as info:
        pages.load("Nothing")
    assert info.value.title == "Nothing"


def test_load_does_not_interpolate_title(pages):
    pages.save(Page(title="Real", body=b"x"))
    with pytest.raises(PageNotFound):
        pages.load("x' OR '1'='1")


def test_duplicate_rows_raise_multiple_matches():
    engine = create_db_engine("sqlite://")
    with engine.begin() as conn:
        # legacy layout without the primary key on title
        conn.exec_driver_sql("CREATE TABLE page (title VARCHAR(255), body BLOB)")
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Dup', x'6f6e65')")
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Dup', x'74776f')")
    with Session(engine) as session:
        with pytest.raises(MultiplePagesFound) as info:
            PageRepository(session).load("Dup")
    assert info.value.count == 2
    assert not isinstance(info.value, PageNotFound)


def test_missing_table_raises_store_error():
    engine = create_db_engine("sqlite://")
    with Session(engine) as session:
        repo = PageRepository(session)
        with pytest.raises(StoreError):
            repo.load("Any")
        with pytest.raises(StoreError):
            repo.save(Page(title="Any", body=b""))


def _keyless_engine(body_type="BLOB"):
    engine = create_db_engine("sqlite://")
    with engine.begin() as conn:
        conn.exec_driver_sql(f"CREATE TABLE page (title TEXT, body {body_type})")
    return engine


def test_text_body_column_is_read_as_bytes():
    engine = _keyless_engine("TEXT")
    with engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Old', 'hello')")
    create_db_and_tables(engine)
    with Session(engine) as session:
        page = PageRepository(session).load("Old")
    assert page.body == b"hello"
    assert page.text == "hello"


def test_unreadable_body_raises_store_error():
    engine = _keyless_engine("INTEGER")
    with engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Num', -1)")
    with Session(engine) as session:
        with pytest.raises(StoreError):
            PageRepository(session).load("Num")


def test_keyless_table_gets_unique_title_and_accepts_saves():
    engine = _keyless_engine()
    create_db_and_tables(engine)
    with Session(engine) as session:
        repo = PageRepository(session)
        repo.save(Page(title="New", body=b"x"))
        repo.save(Page(title="New", body=b"y"))
        assert repo.load("New").body == b"y"
        count = session.connection().execute(text("SELECT COUNT(*) FROM page")).scalar_one()
    assert count == 1


def test_keyless_table_with_duplicates_still_starts():
    engine = _keyless_engine()
    with engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Dup', x'61')")
        conn.exec_driver_sql("INSERT INTO page (title, body) VALUES ('Dup', x'62')")
    create_db_and_tables(engine)
    with Session(engine) as session:
        with pytest.raises(MultiplePagesFound):
            PageRepository(session).load("Dup")
