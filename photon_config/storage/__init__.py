"""Storage backends and the configuration aggregate they persist."""

from .legacy_provider import LegacyConfigProvider
from .models import (
    CameraConfiguration,
    CameraSource,
    HardwareConfig,
    HardwareSettings,
    NetworkConfig,
    PhotonConfiguration,
)
from .provider import ConfigProvider, StorageStrategy
from .sql_provider import SqlConfigProvider

__all__ = [
    "CameraConfiguration",
    "CameraSource",
    "ConfigProvider",
    "HardwareConfig",
    "HardwareSettings",
    "LegacyConfigProvider",
    "NetworkConfig",
    "PhotonConfiguration",
    "SqlConfigProvider",
    "StorageStrategy",
]
