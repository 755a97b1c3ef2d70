"""FastAPI application factory for the Fuel Monitor dashboard API."""

from __future__ import annotations

from fastapi import FastAPI, Request

from fuel_monitor import __version__
from fuel_monitor.analytics.service import DailyMetricsService
from fuel_monitor.capture.orchestrator import DailyCaptureOrchestrator
from fuel_monitor.config.manager import ConfigManager
from fuel_monitor.config.schema import AppConfig
from fuel_monitor.dashboard.auth import AuthMiddleware, auth_router
from fuel_monitor.dashboard.views import DashboardViewAssembler
from fuel_monitor.db.repository import Repository
from fuel_monitor.resilience.health_check import HealthChecker


def create_app(
    config: AppConfig,
    repo: Repository,
    metrics: DailyMetricsService,
    orchestrator: DailyCaptureOrchestrator,
    views: DashboardViewAssembler,
    health: HealthChecker | None = None,
    config_manager: ConfigManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fuel Monitor",
        description="Daily fuel and power-source reporting for remote sites",
        version=__version__,
    )

    @app.middleware("http")
    async def disable_browser_cache(request: Request, call_next):
        response = await call_next(request)
        if request.method in {"GET", "HEAD"}:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return response

    # Shared services for route handlers
    app.state.config = config
    app.state.repo = repo
    app.state.metrics = metrics
    app.state.orchestrator = orchestrator
    app.state.views = views
    app.state.health = health or orchestrator.health
    app.state.config_manager = config_manager
    app.state.scheduler = None

    from fuel_monitor.dashboard.routes.api import router as api_router

    app.include_router(auth_router)
    app.include_router(api_router, prefix="/api")

    if config.dashboard.auth.users:
        app.add_middleware(AuthMiddleware, auth_config=config.dashboard.auth)

    return app
