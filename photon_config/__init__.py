"""Persistence of the vision coprocessor's camera, network and hardware settings."""

from __future__ import annotations

from importlib import metadata

from .core.config_manager import ConfigManager, create_config_manager, create_provider
from .core.errors import (
    ArchiveFormatError,
    ConfigFormatError,
    LogNameParseError,
    PhotonConfigError,
    UnsupportedStorageStrategyError,
)
from .core.settings import StartupSettings, load_startup_settings
from .storage import (
    CameraConfiguration,
    HardwareConfig,
    HardwareSettings,
    LegacyConfigProvider,
    NetworkConfig,
    PhotonConfiguration,
    SqlConfigProvider,
    StorageStrategy,
)

try:
    __version__ = metadata.version("photon-config")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = [
    "__version__",
    "ArchiveFormatError",
    "CameraConfiguration",
    "ConfigFormatError",
    "ConfigManager",
    "HardwareConfig",
    "HardwareSettings",
    "LegacyConfigProvider",
    "LogNameParseError",
    "NetworkConfig",
    "PhotonConfigError",
    "PhotonConfiguration",
    "SqlConfigProvider",
    "StartupSettings",
    "StorageStrategy",
    "UnsupportedStorageStrategyError",
    "create_config_manager",
    "create_provider",
    "load_startup_settings",
]
