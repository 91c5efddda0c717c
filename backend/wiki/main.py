"""FastAPI application factory and server entrypoint.

`create_app` builds the application from explicit `Settings`: it creates
the pooled engine, pings the database, creates the `page` table and
loads the templates, storing all of it on `app.state`. Any failure
raises `StartupError` before a single request is served.

Endpoints implemented:
- GET /
- GET /view/{title}
- GET /edit/{title}
- POST /save/{title}
- GET /health
"""

import json
import logging
import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, load_env_file
from .database import check_connection, create_db_and_tables, create_db_engine
from .errors import StartupError
from .routes import router

logger = logging.getLogger("wiki.api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Assemble the wiki application around `settings`."""
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    try:
        engine = create_db_engine(settings.DATABASE_URL, pool_size=settings.DB_POOL_SIZE)
    except (SQLAlchemyError, ImportError) as exc:
        raise StartupError(f"cannot open database: {exc}") from exc
    check_connection(engine)
    create_db_and_tables(engine)

    app = FastAPI(title="Wiki")
    app.state.settings = settings
    app.state.engine = engine
    app.state.templates = Jinja2Templates(directory=str(settings.TEMPLATES_DIR))
    app.middleware("http")(request_context_middleware)
    app.include_router(router)

    @app.get("/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"status": "ok"}

    logger.info("wiki ready on %s", engine.url.render_as_string(hide_password=True))
    return app


async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


def run():
    """Load configuration, build the app and serve it.

    Configuration and database problems abort the process before the
    server starts listening.
    """
    try:
        load_env_file()
        settings = Settings()
        app = create_app(settings)
    except StartupError as exc:
        logging.basicConfig(level="INFO")
        logger.critical("startup failed: %s", exc)
        raise SystemExit(1) from exc
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == '__main__':
    run()
