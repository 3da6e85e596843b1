"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, schedule
from .config import settings
from .services.scheduling.cache import ScheduleCache
from .services.scheduling.engine_client import OptimizationEngineClient
from .services.scheduling.gateway import SmartScheduleGateway
from .services.scheduling.orchestrator import SmartScheduleOrchestrator


def create_app(
    orchestrator: SmartScheduleOrchestrator | None = None,
    engine_client: OptimizationEngineClient | None = None,
) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        root_path="",
    )
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # One cache and orchestrator per process; every request shares them.
    if orchestrator is None:
        engine_client = engine_client or OptimizationEngineClient()
        orchestrator = SmartScheduleOrchestrator(
            cache=ScheduleCache(ttl=settings.cache_ttl_seconds),
            engine=engine_client,
        )
    app.state.orchestrator = orchestrator
    app.state.engine_client = engine_client or orchestrator.engine
    app.state.schedule_cache = orchestrator.cache
    app.state.gateway = SmartScheduleGateway(orchestrator)

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(schedule.router, prefix=settings.api_prefix)
    return app


app = create_app()
