"""Directory-per-camera JSON layout written by older releases.

Layout under the root::

    hardwareConfig.json
    hardwareSettings.json
    networkSettings.json
    cameras/<unique name>/config.json
    cameras/<unique name>/drivermode.json
    cameras/<unique name>/pipelines/<index>.json
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from photon_config.core.errors import ConfigFormatError
from photon_config.core.file_sync_utils import atomic_write_text
from photon_config.core.paths import (
    HARDWARE_CONFIG_NAME,
    HARDWARE_SETTINGS_NAME,
    LEGACY_CAMERAS_DIRNAME,
    NETWORK_SETTINGS_NAME,
)

from .models import (
    CameraConfiguration,
    HardwareConfig,
    HardwareSettings,
    NetworkConfig,
    PhotonConfiguration,
)
from .provider import ConfigProvider, StorageStrategy, dump_json, read_json_file

T = TypeVar("T")

CONFIG_FILE = "config.json"
DRIVER_MODE_FILE = "drivermode.json"
PIPELINES_DIRNAME = "pipelines"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def _pipeline_sort_key(path: Path):
    stem = path.stem
    return (0, int(stem), "") if stem.isdigit() else (1, 0, stem)


def camera_dirname(unique_name: str) -> str:
    """Directory name for a camera; unique names may contain path separators."""
    safe = _UNSAFE_NAME_CHARS.sub("_", unique_name).strip(". ")
    return safe or "camera"


def _unused_dirname(base: str, taken: Dict[str, Path]) -> str:
    # Names that sanitize alike get a numeric suffix; keys in ``taken`` are lowercased
    candidate = base
    suffix = 2
    while candidate.lower() in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


class LegacyConfigProvider(ConfigProvider):
    """Reads (and can rewrite) the pre-database settings layout."""

    strategy = StorageStrategy.LEGACY

    @property
    def cameras_dir(self) -> Path:
        return self.root / LEGACY_CAMERAS_DIRNAME

    def _global_path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    # ------------------------------------------------------------------
    # Loading

    def load(self) -> None:
        config = PhotonConfiguration()
        if not self.root.is_dir():
            self._logger.warning("Legacy settings root %s does not exist; using defaults", self.root)
            self.ensure_root()
            self._config = config
            return

        config.set_hardware_config(self._load_global(HARDWARE_CONFIG_NAME, HardwareConfig.from_dict, HardwareConfig))
        config.set_hardware_settings(
            self._load_global(HARDWARE_SETTINGS_NAME, HardwareSettings.from_dict, HardwareSettings)
        )
        config.set_network_config(self._load_global(NETWORK_SETTINGS_NAME, NetworkConfig.from_dict, NetworkConfig))

        for camera in self._load_cameras():
            config.add_camera_config(camera.unique_name, camera)

        self._config = config
        self._logger.info(
            "Loaded legacy settings from %s (%d cameras)", self.root, len(config.camera_configurations)
        )

    def _load_global(self, name: str, parse: Callable[[Any], T], default: Callable[[], T]) -> T:
        path = self._global_path(name)
        if not path.exists():
            return default()
        try:
            return parse(read_json_file(path))
        except (OSError, ConfigFormatError) as exc:
            self._logger.warning("Could not load %s, using defaults: %s", path, exc)
            return default()

    def _load_cameras(self) -> List[CameraConfiguration]:
        cameras: List[CameraConfiguration] = []
        try:
            camera_dirs = sorted(p for p in self.cameras_dir.iterdir() if p.is_dir())
        except FileNotFoundError:
            return cameras
        except OSError as exc:
            self._logger.error("Could not list legacy cameras in %s: %s", self.cameras_dir, exc)
            return cameras

        for camera_dir in camera_dirs:
            camera = self._load_camera(camera_dir)
            if camera is not None:
                cameras.append(camera)
        return cameras

    def _load_camera(self, camera_dir: Path) -> Optional[CameraConfiguration]:
        config_path = camera_dir / CONFIG_FILE
        try:
            envelope = read_json_file(config_path)
            driver_path = camera_dir / DRIVER_MODE_FILE
            driver_mode = read_json_file(driver_path) if driver_path.exists() else None
            pipelines = [read_json_file(path) for path in self._pipeline_files(camera_dir)]
            unique_name = None
            if isinstance(envelope, dict) and not envelope.get("uniqueName"):
                unique_name = camera_dir.name
            return CameraConfiguration.from_dict(
                envelope,
                unique_name=unique_name,
                pipeline_settings=pipelines,
                driver_mode=driver_mode,
            )
        except FileNotFoundError:
            self._logger.warning("Skipping %s: no %s", camera_dir, CONFIG_FILE)
        except (OSError, ConfigFormatError) as exc:
            self._logger.warning("Skipping legacy camera %s: %s", camera_dir.name, exc)
        return None

    @staticmethod
    def _pipeline_files(camera_dir: Path) -> List[Path]:
        pipelines_dir = camera_dir / PIPELINES_DIRNAME
        if not pipelines_dir.is_dir():
            return []
        return sorted(pipelines_dir.glob("*.json"), key=_pipeline_sort_key)

    # ------------------------------------------------------------------
    # Saving

    def save_to_disk(self) -> bool:
        if not self.ensure_root():
            return False

        with self._save_lock:
            config = self._config
            try:
                atomic_write_text(
                    self._global_path(HARDWARE_CONFIG_NAME), dump_json(config.hardware_config.to_dict())
                )
                atomic_write_text(
                    self._global_path(HARDWARE_SETTINGS_NAME), dump_json(config.hardware_settings.to_dict())
                )
                atomic_write_text(
                    self._global_path(NETWORK_SETTINGS_NAME), dump_json(config.network_config.to_dict())
                )

                written: Dict[str, Path] = {}
                for name, camera in config.camera_items():
                    camera_dir = self.cameras_dir / _unused_dirname(camera_dirname(name), written)
                    self._write_camera(camera_dir, camera)
                    written[camera_dir.name.lower()] = camera_dir

                self._remove_stale_cameras({path.name for path in written.values()})
            except OSError as exc:
                self._logger.error("Could not save legacy settings to %s: %s", self.root, exc)
                return False

        self._logger.debug("Saved %d cameras to legacy layout in %s", len(config.camera_configurations), self.root)
        return True

    def _write_camera(self, camera_dir: Path, camera: CameraConfiguration) -> None:
        atomic_write_text(camera_dir / CONFIG_FILE, dump_json(camera.to_dict()))
        atomic_write_text(camera_dir / DRIVER_MODE_FILE, dump_json(camera.driver_mode))

        pipelines_dir = camera_dir / PIPELINES_DIRNAME
        keep = set()
        for index, pipeline in enumerate(camera.pipeline_settings):
            path = pipelines_dir / f"{index}.json"
            atomic_write_text(path, dump_json(pipeline))
            keep.add(path.name)
        if pipelines_dir.is_dir():
            for path in pipelines_dir.glob("*.json"):
                if path.name not in keep:
                    path.unlink()

    def _remove_stale_cameras(self, keep: set) -> None:
        if not self.cameras_dir.is_dir():
            return
        for camera_dir in self.cameras_dir.iterdir():
            if camera_dir.is_dir() and camera_dir.name not in keep:
                shutil.rmtree(camera_dir)
                self._logger.debug("Removed stale camera directory %s", camera_dir.name)


__all__ = ["LegacyConfigProvider", "camera_dirname"]
