"""Application settings and validation.

Settings are read from the process environment. `load_env_file` seeds
the environment from a local `.env` file first; it is called once by the
server entrypoint before `Settings` is constructed.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import StartupError
from .models import TITLE_PATTERN

BASE = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE / 'wiki.db'}"
DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def load_env_file(path: Optional[str] = None) -> bool:
    """Load `KEY=value` pairs from an env file into `os.environ`.

    Without an explicit path, `WIKI_ENV_FILE` is consulted and then the
    default `.env` in the working directory. A missing default file is
    not an error; a missing or unreadable file that was asked for is.
    Variables already present in the environment win.
    """
    explicit = path or os.getenv("WIKI_ENV_FILE")
    env_path = Path(explicit) if explicit else Path.cwd() / ".env"
    if not env_path.is_file():
        if explicit:
            raise StartupError(f"env file not found: {env_path}")
        return False
    try:
        return load_dotenv(env_path, override=False)
    except (OSError, UnicodeDecodeError) as exc:
        raise StartupError(f"cannot load env file {env_path}: {exc}") from exc


class Settings:
    DATABASE_URL: str
    HOST: str
    PORT: int
    FRONT_PAGE: str
    TEMPLATES_DIR: Path
    DB_POOL_SIZE: int
    LOG_LEVEL: str

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ
        url = env.get("DATABASE_URL") or env.get("ELEPHANTSQL_URL") or DEFAULT_DB_URL
        # hosted postgres providers hand out postgres:// which SQLAlchemy no longer accepts
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        self.DATABASE_URL = url
        self.HOST = env.get("WIKI_HOST", "0.0.0.0")
        self.PORT = _int_setting(env, "WIKI_PORT", 8080)
        self.FRONT_PAGE = env.get("WIKI_FRONT_PAGE", "FrontPage")
        self.TEMPLATES_DIR = Path(env.get("WIKI_TEMPLATES_DIR") or DEFAULT_TEMPLATES_DIR)
        self.DB_POOL_SIZE = _int_setting(env, "DB_POOL_SIZE", 5)
        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        try:
            make_url(self.DATABASE_URL)
        except ArgumentError as exc:
            raise StartupError(f"cannot parse database url: {exc}") from exc
        if not 0 < self.PORT < 65536:
            raise StartupError(f"WIKI_PORT out of range: {self.PORT}")
        if self.DB_POOL_SIZE < 1:
            raise StartupError("DB_POOL_SIZE must be at least 1")
        if not TITLE_PATTERN.fullmatch(self.FRONT_PAGE):
            raise StartupError(f"WIKI_FRONT_PAGE is not a valid page title: {self.FRONT_PAGE!r}")
        if not self.TEMPLATES_DIR.is_dir():
            raise StartupError(f"templates directory not found: {self.TEMPLATES_DIR}")


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise StartupError(f"{name} must be an integer, got {raw!r}") from exc
