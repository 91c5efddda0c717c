import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from wiki.config import Settings
from wiki.main import create_app
from wiki.repositories import PageRepository


@pytest.fixture
def settings():
    """Settings over a private in-memory SQLite database."""
    return Settings(environ={"DATABASE_URL": "sqlite://"})


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def pages(app):
    """A repository sharing the application's engine, for seeding and checking."""
    with Session(app.state.engine) as session:
        yield PageRepository(session)
