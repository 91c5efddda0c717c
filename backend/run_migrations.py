"""Simple migration runner applying the SQL files in migrations/ to DATABASE_URL."""
import logging
from pathlib import Path

from sqlalchemy.engine import Engine

from wiki.config import Settings, load_env_file
from wiki.database import create_db_engine

BASE = Path(__file__).parent
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))

logger = logging.getLogger("wiki.migrations")


def split_statements(sql: str) -> list:
    """Split a migration file into statements, dropping `--` comment lines."""
    lines = [ln for ln in sql.splitlines() if not ln.strip().startswith("--")]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def run(engine: Engine = None, migrations=None) -> int:
    """Execute SQL migration files against the configured database.

    Every file is applied in lexical order inside one transaction. Returns
    the number of files applied.
    """
    if engine is None:
        load_env_file()
        engine = create_db_engine(Settings().DATABASE_URL)
    files = MIGRATIONS if migrations is None else migrations
    logger.info("Using database: %s", engine.url.render_as_string(hide_password=True))
    with engine.begin() as conn:
        for m in files:
            logger.info("Applying: %s", m.name)
            for stmt in split_statements(m.read_text(encoding="utf-8")):
                conn.exec_driver_sql(stmt)
    logger.info("Migrations applied.")
    return len(files)


if __name__ == '__main__':
    logging.basicConfig(level="INFO")
    run()
