"""
API Server - aiohttp-based REST server for the settings subsystem.

Exposes import/export, targeted uploads and settings edits over HTTP so the
web UI (or a script) can manage the configuration root.
"""

from typing import Optional

from aiohttp import web

from photon_config.core.config_manager import ConfigManager
from photon_config.core.logging_utils import get_module_logger

from .middleware import (
    error_handling_middleware,
    localhost_only_middleware,
    request_logging_middleware,
)
from .routes import setup_all_routes


logger = get_module_logger("APIServer")


def create_app(manager: ConfigManager, localhost_only: bool = False) -> web.Application:
    """Create and configure the aiohttp application."""
    # localhost check -> request logging -> error handling
    middlewares = [request_logging_middleware, error_handling_middleware]
    if localhost_only:
        middlewares.insert(0, localhost_only_middleware)

    app = web.Application(middlewares=middlewares)
    app["config_manager"] = manager
    setup_all_routes(app)
    return app


class SettingsAPIServer:
    """REST server wrapping one ConfigManager.

    Runs on the caller's asyncio loop; blocking storage calls are pushed to
    worker threads by the route handlers.
    """

    def __init__(
        self,
        manager: ConfigManager,
        host: str = "127.0.0.1",
        port: int = 5800,
        localhost_only: bool = False,
    ):
        self.manager = manager
        self.host = host
        self.port = port
        self.localhost_only = localhost_only

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

    async def start(self) -> None:
        """Start the API server (non-blocking)."""
        if self._running:
            logger.warning("API server already running")
            return

        self._app = create_app(self.manager, self.localhost_only)
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        logger.info("API server started on %s", self.url)

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self._running:
            return

        logger.info("Stopping API server...")

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False

        logger.info("API server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
