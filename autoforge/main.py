"""FastAPI entry-point exposing agent dispatch and PR automation."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autoforge.api.cli import router as cli_router
from autoforge.api.errors import register_exception_handlers
from autoforge.api.github import router as github_router
from autoforge.api.middleware import CorrelationIDMiddleware
from autoforge.api.routes import router as agents_router
from autoforge.api.tasks import router as tasks_router
from autoforge.config import Config
from autoforge.logging import get_logger, setup_logging
from autoforge.runtime import AppContext, build_context

logger = get_logger(__name__)


def create_app(context: Optional[AppContext] = None, config: Optional[Config] = None) -> FastAPI:
    """Build the application. A supplied ``context`` is used as is and not closed on shutdown."""
    config = context.config if context else (config or Config.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.logging)
        owned = context is None
        app.state.context = context or build_context(config)
        agents = app.state.context.dispatcher.get_all_agents()
        logger.info("app_started", environment=config.environment, agents=len(agents))
        yield
        if owned:
            await app.state.context.aclose()
        logger.info("app_stopped")

    app = FastAPI(title="AutoForge Agents", lifespan=lifespan)
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIDMiddleware)
    register_exception_handlers(app)

    app.include_router(agents_router)
    app.include_router(tasks_router)
    app.include_router(cli_router)
    app.include_router(github_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "environment": config.environment}

    return app


app = create_app()
