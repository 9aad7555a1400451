"""Startup configuration: which backend to use, where the root lives, timings.

Read from an optional ``key = value`` text file, then overridden by
environment variables::

    # photon_config.txt
    root_dir = /opt/photonvision/photonvision_config
    storage_strategy = sql
    save_tick_interval = 1.0
    save_debounce = 1.0
    log_level = info
    api_host = 0.0.0.0
    api_port = 5800
    api_localhost_only = false
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

import aiofiles

from photon_config.storage.provider import StorageStrategy

from .logging_utils import get_module_logger
from .paths import DEFAULT_ROOT_DIR, ROOT_DIR_ENV, default_root_dir
from .save_scheduler import DEFAULT_DEBOUNCE, DEFAULT_TICK_INTERVAL

logger = get_module_logger("StartupSettings")

STORAGE_ENV = "PHOTON_CONFIG_STORAGE"


def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
    config: Dict[str, str] = {}

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue
        if '=' not in line:
            continue

        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip()

        if '#' in value:
            value = value.split('#')[0].strip()

        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]

        config[key] = value

    return config


def get_bool(config: Mapping[str, str], key: str, default: bool = False) -> bool:
    if key not in config:
        return default
    return config[key].lower() in ('true', '1', 'yes', 'on')


def get_int(config: Mapping[str, str], key: str, default: int = 0) -> int:
    if key not in config:
        return default
    try:
        return int(config[key])
    except ValueError:
        logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
        return default


def get_float(config: Mapping[str, str], key: str, default: float = 0.0) -> float:
    if key not in config:
        return default
    try:
        return float(config[key])
    except ValueError:
        logger.warning("Invalid float value for %s: %s, using default %f", key, config[key], default)
        return default


def get_str(config: Mapping[str, str], key: str, default: str = "") -> str:
    return config.get(key, default)


@dataclass
class StartupSettings:
    root_dir: Path = field(default_factory=default_root_dir)
    storage_strategy: StorageStrategy = StorageStrategy.SQL
    save_tick_interval: float = DEFAULT_TICK_INTERVAL
    save_debounce: float = DEFAULT_DEBOUNCE
    log_level: str = "info"
    api_host: str = "127.0.0.1"
    api_port: int = 5800
    api_localhost_only: bool = False

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, str],
        env: Optional[Mapping[str, str]] = None,
    ) -> "StartupSettings":
        env = os.environ if env is None else env
        defaults = cls()

        root = env.get(ROOT_DIR_ENV) or values.get("root_dir")
        strategy = env.get(STORAGE_ENV) or values.get("storage_strategy") or defaults.storage_strategy.value

        tick = get_float(values, "save_tick_interval", defaults.save_tick_interval)
        if tick <= 0:
            logger.warning("save_tick_interval must be positive, using %.1f", defaults.save_tick_interval)
            tick = defaults.save_tick_interval
        debounce = get_float(values, "save_debounce", defaults.save_debounce)
        if debounce < 0:
            logger.warning("save_debounce must not be negative, using %.1f", defaults.save_debounce)
            debounce = defaults.save_debounce

        return cls(
            root_dir=Path(root).expanduser() if root else DEFAULT_ROOT_DIR,
            storage_strategy=StorageStrategy.parse(strategy),
            save_tick_interval=tick,
            save_debounce=debounce,
            log_level=get_str(values, "log_level", defaults.log_level),
            api_host=get_str(values, "api_host", defaults.api_host),
            api_port=get_int(values, "api_port", defaults.api_port),
            api_localhost_only=get_bool(values, "api_localhost_only", defaults.api_localhost_only),
        )


def read_settings_file(path: Optional[Union[str, Path]]) -> Dict[str, str]:
    if path is None:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        logger.debug("No startup settings file at %s", config_path)
        return {}
    try:
        with open(config_path, 'r', encoding='utf-8') as fh:
            return parse_config_lines(fh)
    except OSError as e:
        logger.error("Failed to read startup settings %s: %s", config_path, e)
        return {}


async def read_settings_file_async(path: Optional[Union[str, Path]]) -> Dict[str, str]:
    """Async version used by ``serve``, which reads its settings inside the event loop."""
    if path is None:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        logger.debug("No startup settings file at %s", config_path)
        return {}
    try:
        lines: list[str] = []
        async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
            async for line in f:
                lines.append(line)
        return parse_config_lines(lines)
    except OSError as e:
        logger.error("Failed to read startup settings %s: %s", config_path, e)
        return {}


def load_startup_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> StartupSettings:
    return StartupSettings.from_mapping(read_settings_file(path), env)


async def load_startup_settings_async(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> StartupSettings:
    return StartupSettings.from_mapping(await read_settings_file_async(path), env)


__all__ = [
    "STORAGE_ENV",
    "StartupSettings",
    "get_bool",
    "get_float",
    "get_int",
    "get_str",
    "load_startup_settings",
    "load_startup_settings_async",
    "parse_config_lines",
    "read_settings_file",
    "read_settings_file_async",
]
