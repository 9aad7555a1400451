"""API route registration."""

from aiohttp import web

from .settings import setup_settings_routes


def setup_all_routes(app: web.Application) -> None:
    """Register all API routes with the application."""
    setup_settings_routes(app)


__all__ = ["setup_all_routes"]
