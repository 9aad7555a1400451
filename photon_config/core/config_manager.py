"""Process-wide entry point to the persisted vision configuration.

One ``ConfigManager`` is built at startup (see ``create_config_manager``)
and handed to every collaborator. It owns the active storage backend and
the debounced save scheduler; all reads and writes of the configuration go
through it.

Mutating calls change the in-memory aggregate and only mark a save as
pending. Destructive or bulk operations (clear, import, migration) write
synchronously on the caller's thread.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from photon_config.storage.legacy_provider import LegacyConfigProvider
from photon_config.storage.models import CameraConfiguration, CameraSource, NetworkConfig, PhotonConfiguration
from photon_config.storage.provider import ConfigProvider, StorageStrategy
from photon_config.storage.sql_provider import SqlConfigProvider

from .archive import SettingsArchiver
from .errors import UnsupportedStorageStrategyError
from .logging_utils import get_module_logger
from .migration import LegacyMigrator
from .paths import (
    CALIB_DIRNAME,
    IMAGE_SAVES_DIRNAME,
    LOGS_DIRNAME,
    log_fname_to_date,
    ta_to_log_fname,
)
from .save_scheduler import DEFAULT_DEBOUNCE, DEFAULT_TICK_INTERVAL, SaveScheduler
from .settings import StartupSettings

logger = get_module_logger("ConfigManager")


class ConfigManager:

    def __init__(
        self,
        root: Union[str, Path],
        provider: ConfigProvider,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
        migrator: Optional[LegacyMigrator] = None,
        archiver: Optional[SettingsArchiver] = None,
        autostart: bool = True,
    ):
        self.root = Path(root)
        self.provider = provider
        self.migrator = migrator or LegacyMigrator()
        self.archiver = archiver or SettingsArchiver(self.root, migrator=self.migrator)
        self.scheduler = SaveScheduler(
            self.save_to_disk,
            tick_interval=tick_interval,
            debounce=debounce,
            logger=logger.getChild("Scheduler"),
        )
        if autostart:
            self.scheduler.start()

    # ------------------------------------------------------------------
    # Lifecycle

    def load(self) -> None:
        self.migrator.migrate_if_present(self.root, self.provider)
        self.provider.load()

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        self.scheduler.stop(timeout=timeout)

    def __enter__(self) -> "ConfigManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Aggregate access

    def get_config(self) -> PhotonConfiguration:
        return self.provider.get_config()

    def request_save(self) -> None:
        logger.debug("Requesting save...")
        self.scheduler.request_save()

    def save_to_disk(self) -> bool:
        return self.provider.save_to_disk()

    def add_camera_configurations(self, sources: Iterable[CameraSource]) -> None:
        self.get_config().add_camera_configs(sources)
        self.request_save()

    def save_module(self, config: CameraConfiguration, unique_name: str) -> None:
        self.get_config().add_camera_config(unique_name, config)
        self.request_save()

    def set_network_settings(self, network_config: NetworkConfig) -> None:
        self.get_config().set_network_config(network_config)
        self.request_save()

    def unload_camera_configs(self) -> None:
        self.get_config().camera_configurations.clear()

    def clear_config(self) -> bool:
        logger.info("Clearing configuration!")
        self.provider.clear_config()
        return self.provider.save_to_disk()

    # ------------------------------------------------------------------
    # Targeted uploads

    def save_uploaded_hardware_config(self, upload_path: Union[str, Path]) -> bool:
        return self.provider.save_uploaded_hardware_config(upload_path)

    def save_uploaded_hardware_settings(self, upload_path: Union[str, Path]) -> bool:
        return self.provider.save_uploaded_hardware_settings(upload_path)

    def save_uploaded_network_config(self, upload_path: Union[str, Path]) -> bool:
        return self.provider.save_uploaded_network_config(upload_path)

    # ------------------------------------------------------------------
    # Archives

    def export_settings_archive(self) -> Path:
        return self.archiver.export_settings_archive()

    def import_settings_archive(self, upload_path: Union[str, Path]) -> bool:
        """Replace the whole root with an uploaded archive, then reload it.

        A save pending from earlier edits is held back while the archive is
        unpacked and dropped once the import succeeds.
        """
        pending = self.scheduler.pending
        self.scheduler.clear()
        try:
            success = self.archiver.import_settings_archive(upload_path)
        except Exception:
            if pending:
                self.scheduler.request_save()
            raise
        if success:
            self.provider.load()
        elif pending:
            self.scheduler.request_save()
        return success

    # ------------------------------------------------------------------
    # Root directory layout

    def get_logs_dir(self) -> Path:
        return self.root / LOGS_DIRNAME

    def get_calib_dir(self) -> Path:
        return self.root / CALIB_DIRNAME

    def get_log_path(self, now: Optional[datetime] = None) -> Path:
        log_file = self.get_logs_dir() / ta_to_log_fname(now or datetime.now())
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to mkdir at LogPath %s: %s", log_file.parent, exc)
        return log_file

    def get_image_save_path(self) -> Path:
        img_path = self.root / IMAGE_SAVES_DIRNAME
        try:
            img_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to mkdir at ImageSavePath %s: %s", img_path, exc)
        return img_path

    @staticmethod
    def ta_to_log_fname(moment: datetime) -> str:
        return ta_to_log_fname(moment)

    @staticmethod
    def log_fname_to_date(fname: str) -> datetime:
        return log_fname_to_date(fname)


def create_provider(strategy: Union[str, StorageStrategy], root: Union[str, Path]) -> ConfigProvider:
    strategy = StorageStrategy.parse(strategy)
    if strategy is StorageStrategy.SQL:
        return SqlConfigProvider(root)
    if strategy is StorageStrategy.LEGACY:
        return LegacyConfigProvider(root)
    raise UnsupportedStorageStrategyError(f"Storage strategy '{strategy.value}' is not implemented")


def create_config_manager(settings: Optional[StartupSettings] = None, *, autostart: bool = True) -> ConfigManager:
    """Build the single ConfigManager for this process from startup settings."""
    settings = settings or StartupSettings()
    provider = create_provider(settings.storage_strategy, settings.root_dir)
    logger.info(
        "Using %s storage in %s", settings.storage_strategy.value, settings.root_dir
    )
    return ConfigManager(
        settings.root_dir,
        provider,
        tick_interval=settings.save_tick_interval,
        debounce=settings.save_debounce,
        autostart=autostart,
    )


__all__ = ["ConfigManager", "create_config_manager", "create_provider"]
