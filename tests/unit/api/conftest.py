"""Pytest fixtures for API unit tests.

Routes run against a real ConfigManager rooted in ``tmp_path`` with its
scheduler thread disabled, so each test drives saves explicitly.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, TypeVar

import pytest
from aiohttp import web

from photon_config.api.server import create_app
from photon_config.core.archive import SettingsArchiver
from photon_config.core.config_manager import ConfigManager
from photon_config.storage.sql_provider import SqlConfigProvider


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_test_app(manager: ConfigManager) -> web.Application:
    """Create a test application with all routes registered."""
    return create_app(manager, localhost_only=False)


@pytest.fixture
def config_manager(tmp_path, sample_config) -> ConfigManager:
    root = tmp_path / "root"
    archiver = SettingsArchiver(
        root,
        export_path=tmp_path / "export" / "photonvision-settings.zip",
        staging_dir=tmp_path / "staging",
    )
    manager = ConfigManager(root, SqlConfigProvider(root), archiver=archiver, autostart=False)
    manager.load()
    manager.provider.set_config(sample_config)
    manager.save_to_disk()
    yield manager
    manager.shutdown()


@pytest.fixture
def test_app(config_manager: ConfigManager) -> web.Application:
    return create_test_app(config_manager)
