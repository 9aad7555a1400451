"""Unit test fixtures for isolated, fast test execution.

Every unit test runs with:
- the ``PHOTON_CONFIG_*`` environment overrides removed
- the shared temp locations (export archive, import staging) redirected
  into a per-test temporary directory
"""

from __future__ import annotations

from pathlib import Path

import pytest

from photon_config.core import paths
from photon_config.core.paths import ROOT_DIR_ENV
from photon_config.core.settings import STORAGE_ENV


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real temp dir and the caller's environment.

    Returns:
        Path standing in for the system temp directory.
    """
    monkeypatch.delenv(ROOT_DIR_ENV, raising=False)
    monkeypatch.delenv(STORAGE_ENV, raising=False)

    fake_tmp = tmp_path_factory.mktemp("systmp")
    monkeypatch.setattr(paths, "temp_dir", lambda: fake_tmp)
    return fake_tmp
