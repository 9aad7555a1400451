"""HTTP API for the settings subsystem."""

from .server import SettingsAPIServer, create_app

__all__ = ["SettingsAPIServer", "create_app"]
