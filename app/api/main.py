from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.errors import register_exception_handlers
from app.api.routes import analysis, health, permissions, sharing, uploads
from app.api.services import Services, build_services
from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.logging.logger import Log


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the API application.

    With ``services`` supplied (tests) the database pool is never touched.
    Otherwise startup opens the pool, wires services from settings and fails
    any claim left behind by a previous process.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is not None:
            yield
            return
        Log.configure(settings.log_level)
        init_pool(settings)
        try:
            app.state.services = build_services(settings)
            app.state.services.analysis.reclaim_stale()
            Log.info("API started", env=settings.app_env, provider=settings.processing_provider)
            yield
        finally:
            close_pool()

    app = FastAPI(title="Contract Analysis API", lifespan=lifespan)
    if services is not None:
        app.state.services = services
    register_exception_handlers(app)
    app.include_router(uploads.router)
    app.include_router(analysis.router)
    app.include_router(sharing.router)
    app.include_router(permissions.router)
    app.include_router(health.router)
    return app
