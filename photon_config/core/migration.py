"""One-shot upgrade of the legacy directory layout to the current backend."""

from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path
from typing import Callable, Optional, Union

from photon_config.storage.legacy_provider import LegacyConfigProvider
from photon_config.storage.models import PhotonConfiguration
from photon_config.storage.provider import ConfigProvider, StorageStrategy
from photon_config.storage.sql_provider import SqlConfigProvider

from .logging_utils import LoggerLike, ensure_structured_logger
from .paths import LEGACY_CAMERAS_BACKUP_DIRNAME, LEGACY_CAMERAS_DIRNAME

ProviderFactory = Callable[[Path], ConfigProvider]


def has_legacy_layout(folder: Union[str, Path]) -> bool:
    return (Path(folder) / LEGACY_CAMERAS_DIRNAME).is_dir()


class LegacyMigrator:
    """Detects a ``cameras/`` directory and rewrites its contents as the current backend.

    Everything goes through the provider interface; the only layout-specific
    knowledge here is the name of the legacy marker directory.
    """

    def __init__(
        self,
        *,
        legacy_factory: ProviderFactory = LegacyConfigProvider,
        current_factory: ProviderFactory = SqlConfigProvider,
        logger: LoggerLike = None,
    ) -> None:
        self._legacy_factory = legacy_factory
        self._current_factory = current_factory
        self._logger = ensure_structured_logger(logger, fallback_name="Migrator")

    def load_legacy(self, source: Path) -> PhotonConfiguration:
        legacy = self._legacy_factory(source)
        legacy.load()
        return legacy.get_config()

    def write_current(self, config: PhotonConfiguration, target_root: Path) -> bool:
        current = self._current_factory(target_root)
        current.set_config(config)
        return current.save_to_disk()

    def convert(self, source: Path, target_root: Path) -> bool:
        """Load the legacy layout under ``source`` and save it as the current backend in ``target_root``."""
        return self.write_current(self.load_legacy(source), target_root)

    def migrate_if_present(self, root: Union[str, Path], active: Optional[ConfigProvider] = None) -> bool:
        """Upgrade ``root`` in place. Returns True when a migration ran.

        A no-op when the active backend is not the current variant or when
        no legacy directory exists, which makes repeated calls harmless.
        """
        if active is not None and active.strategy is not StorageStrategy.SQL:
            return False

        root = Path(root)
        cameras = root / LEGACY_CAMERAS_DIRNAME
        if not cameras.is_dir():
            return False

        self._logger.info("Translating legacy settings in %s", root)
        loaded = self.load_legacy(root)
        self._back_up_legacy_dir(cameras, root / LEGACY_CAMERAS_BACKUP_DIRNAME)

        if self.write_current(loaded, root):
            self._logger.info(
                "Migrated %d cameras from legacy layout", len(loaded.camera_configurations)
            )
        else:
            self._logger.error("Legacy settings were loaded but could not be saved in %s", root)
        return True

    def _back_up_legacy_dir(self, cameras: Path, backup: Path) -> None:
        if backup.exists():
            shutil.rmtree(backup, ignore_errors=True)

        if not os.access(cameras, os.W_OK):
            try:
                cameras.chmod(cameras.stat().st_mode | stat.S_IWUSR)
            except OSError as exc:
                self._logger.warning("Failed to make %s writable: %s", cameras, exc)

        try:
            os.replace(cameras, backup)
            return
        except OSError as exc:
            self._logger.error("Could not move %s to %s: %s", cameras.name, backup.name, exc)

        # Cross-device or locked directories: copy instead, then drop the original.
        try:
            shutil.copytree(cameras, backup, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            self._logger.error("Could not copy %s to %s either, backup is lost: %s", cameras.name, backup.name, exc)

        if cameras.exists():
            try:
                shutil.rmtree(cameras)
            except OSError as exc:
                self._logger.error("Failed to delete %s during migration: %s", cameras, exc)


__all__ = ["LegacyMigrator", "has_legacy_layout"]
