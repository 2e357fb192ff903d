"""FastAPI backend for the content generation pipeline."""

from typing import Optional

from fastapi import FastAPI

from api.error_handlers import register_error_handlers
from api.routes.v1 import (
    articles_router,
    logs_router,
    runs_router,
    templates_router,
)
from contentgen import __version__, config
from contentgen.audit import ResponseLogService
from contentgen.config import PipelineSettings, load_settings
from contentgen.db import SessionFactory, create_db_engine, make_session_factory
from contentgen.logging import configure_structlog
from contentgen.pipeline import PipelineExecutor
from contentgen.providers import ProviderRouter


def create_app(
    session_factory: Optional[SessionFactory] = None,
    router: Optional[ProviderRouter] = None,
    settings: Optional[PipelineSettings] = None,
) -> FastAPI:
    """Build the app and its long-lived collaborators.

    Tests pass an in-memory session factory and a router with fake
    providers; in production everything is built from the environment.
    """
    settings = settings or load_settings()
    if session_factory is None:
        session_factory = make_session_factory(create_db_engine(config.DATABASE_URL))
    router = router or ProviderRouter(settings)

    app = FastAPI(
        title="Content Generation API",
        description="Account-scoped prompt templates, pipeline runs and review",
        version=__version__,
    )

    log_service = ResponseLogService(session_factory)
    app.state.session_factory = session_factory
    app.state.log_service = log_service
    app.state.executor = PipelineExecutor(
        session_factory,
        router,
        settings=settings,
        log_service=log_service,
    )

    register_error_handlers(app)

    app.include_router(runs_router)
    app.include_router(templates_router)
    app.include_router(articles_router)
    app.include_router(logs_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    return app


def main() -> FastAPI:
    """Factory entry point for `uvicorn --factory api.main:main`."""
    configure_structlog(json_format=config.LOG_JSON, log_level=config.LOG_LEVEL)
    return create_app()
