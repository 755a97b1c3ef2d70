"""Fuel Monitor application entry point and lifecycle orchestrator.

Startup sequence:
  config → SQLite → health → metrics → capture orchestrator →
  capture scheduler → dashboard
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import secrets
import signal
import sys
from pathlib import Path

from fuel_monitor import __version__
from fuel_monitor.analytics.service import DailyMetricsService
from fuel_monitor.capture.orchestrator import DailyCaptureOrchestrator
from fuel_monitor.capture.scheduler import CaptureScheduler
from fuel_monitor.clock import Clock, SystemClock
from fuel_monitor.config.manager import ConfigManager
from fuel_monitor.config.schema import AppConfig
from fuel_monitor.db.engine import close_db, init_db
from fuel_monitor.db.repository import Repository
from fuel_monitor.logging.structured import setup_logging
from fuel_monitor.resilience.health_check import SAMPLE_STORE, HealthChecker

logger = logging.getLogger(__name__)


class Application:
    """Wires all modules together and manages startup/shutdown ordering."""

    def __init__(
        self,
        config: AppConfig,
        config_manager: ConfigManager,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.config_manager = config_manager
        self.clock = clock or SystemClock()
        self._running = False
        self._stop_event = asyncio.Event()

        self.repo: Repository | None = None
        self.orchestrator: DailyCaptureOrchestrator | None = None
        self.scheduler: CaptureScheduler | None = None
        self._server = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start all components and block until stopped."""
        logger.info("Starting Fuel Monitor v%s", __version__)
        self._running = True
        self._stop_event.clear()

        # ── 0. Ensure auth session secret exists ──────────────
        auth_cfg = self.config.dashboard.auth
        if auth_cfg.users and not auth_cfg.session_secret:
            self.config = self.config_manager.save_user_config(
                {"dashboard": {"auth": {"session_secret": secrets.token_hex(32)}}}
            )
            logger.info("Generated and persisted session secret for dashboard auth")

        # ── 1. Database ──────────────────────────────────────
        db = await init_db(self.config.db.path)
        await self.config_manager.save_version(db, source="startup")
        self.repo = Repository(db)
        logger.info("Database initialised at %s", self.config.db.path)

        # ── 2. Health checker ────────────────────────────────
        health = HealthChecker(
            max_consecutive_failures=self.config.resilience.max_consecutive_failures,
        )
        health.register(SAMPLE_STORE)

        # ── 3. Metrics + capture ─────────────────────────────
        metrics = DailyMetricsService(self.repo, self.clock, self.config)
        self.orchestrator = DailyCaptureOrchestrator(
            self.repo, self.repo, metrics, self.clock, self.config, health=health,
        )

        if self.config.capture.enabled:
            self.scheduler = CaptureScheduler(self.orchestrator, self.clock, self.config.capture)
            await self.scheduler.start()
        else:
            logger.info("Daily capture disabled")

        # ── 4. Dashboard server ──────────────────────────────
        if not self.config.dashboard.enabled:
            await self._stop_event.wait()
            return

        from fuel_monitor.dashboard.app import create_app
        from fuel_monitor.dashboard.views import DashboardViewAssembler

        views = DashboardViewAssembler(
            self.repo, self.clock, self.config.dashboard.recent_activity_limit,
        )
        app = create_app(
            self.config, self.repo, metrics, self.orchestrator, views,
            health=health, config_manager=self.config_manager,
        )
        app.state.scheduler = self.scheduler

        import uvicorn

        uvi_config = uvicorn.Config(
            app,
            host=self.config.dashboard.host,
            port=self.config.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(uvi_config)
        # Process signal handling stays in main()
        server.install_signal_handlers = lambda: None
        self._server = server

        logger.info(
            "Dashboard available at http://%s:%d",
            self.config.dashboard.host,
            self.config.dashboard.port,
        )
        await server.serve()

    async def stop(self) -> None:
        """Gracefully stop all components in reverse order."""
        if not self._running:
            return

        logger.info("Shutting down Fuel Monitor")
        self._running = False
        self._stop_event.set()

        if self._server is not None:
            self._server.should_exit = True

        if self.scheduler is not None:
            await self.scheduler.stop()

        await close_db()
        self._server = None
        logger.info("Shutdown complete")


def main() -> None:
    """Entry point for the application."""
    config_manager = ConfigManager(Path("config.defaults.yaml"), Path("config.yaml"))
    config = config_manager.load()

    setup_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=config.logging.file,
    )

    app = Application(config, config_manager)
    stop_requested = False
    signal_count = 0

    async def _run() -> None:
        try:
            await app.start()
        finally:
            if app.running:
                await app.stop()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def _request_stop() -> None:
        nonlocal stop_requested, signal_count
        signal_count += 1
        if signal_count >= 2:
            os._exit(130)
        if stop_requested or loop.is_closed():
            return
        stop_requested = True
        loop.call_soon_threadsafe(lambda: asyncio.create_task(app.stop()))

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_stop)
    else:
        signal.signal(signal.SIGINT, lambda *_: _request_stop())
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, lambda *_: _request_stop())

    try:
        loop.run_until_complete(_run())
    except KeyboardInterrupt:
        _request_stop()
        with contextlib.suppress(Exception):
            loop.run_until_complete(app.stop())
    finally:
        pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            with contextlib.suppress(Exception):
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()


if __name__ == "__main__":
    main()
