"""SQLite-backed storage, the current on-disk form of the configuration."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Union

from photon_config.core.errors import ConfigFormatError
from photon_config.core.logging_utils import LoggerLike
from photon_config.core.paths import (
    HARDWARE_CONFIG_NAME,
    HARDWARE_SETTINGS_NAME,
    NETWORK_SETTINGS_NAME,
    SQL_DATABASE_NAME,
)

from .models import (
    CameraConfiguration,
    HardwareConfig,
    HardwareSettings,
    NetworkConfig,
    PhotonConfiguration,
)
from .provider import ConfigProvider, StorageStrategy, dump_json, parse_json_text

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS global ("
    " filename TEXT PRIMARY KEY,"
    " contents TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS cameras ("
    " unique_name TEXT PRIMARY KEY,"
    " config_json TEXT NOT NULL,"
    " drivermode_json TEXT NOT NULL,"
    " pipeline_jsons TEXT NOT NULL)",
)


class SqlConfigProvider(ConfigProvider):
    """Stores global records and cameras as JSON rows in ``photon.sqlite``."""

    strategy = StorageStrategy.SQL

    def __init__(self, root: Union[str, Path], *, logger: LoggerLike = None) -> None:
        super().__init__(root, logger=logger)
        self.db_path = self.root / SQL_DATABASE_NAME

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        try:
            for statement in _SCHEMA:
                conn.execute(statement)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def load(self) -> None:
        if not self.ensure_root():
            self._config = PhotonConfiguration()
            return
        try:
            with closing(self._connect()) as conn:
                globals_ = dict(conn.execute("SELECT filename, contents FROM global").fetchall())
                camera_rows = conn.execute(
                    "SELECT unique_name, config_json, drivermode_json, pipeline_jsons FROM cameras"
                ).fetchall()
        except sqlite3.Error as exc:
            self._logger.error("Could not read settings database %s: %s", self.db_path, exc)
            self._config = PhotonConfiguration()
            return

        config = PhotonConfiguration()
        try:
            config.set_hardware_config(
                HardwareConfig.from_dict(parse_json_text(globals_.get(HARDWARE_CONFIG_NAME), "hardwareConfig") or {})
            )
            config.set_hardware_settings(
                HardwareSettings.from_dict(
                    parse_json_text(globals_.get(HARDWARE_SETTINGS_NAME), "hardwareSettings") or {}
                )
            )
            config.set_network_config(
                NetworkConfig.from_dict(parse_json_text(globals_.get(NETWORK_SETTINGS_NAME), "networkSettings") or {})
            )
        except ConfigFormatError as exc:
            self._logger.warning("Ignoring malformed global settings, using defaults: %s", exc)
            config = PhotonConfiguration()

        for unique_name, config_json, drivermode_json, pipeline_jsons in camera_rows:
            try:
                camera = CameraConfiguration.from_dict(
                    parse_json_text(config_json, f"{unique_name} config") or {},
                    unique_name=unique_name,
                    pipeline_settings=parse_json_text(pipeline_jsons, f"{unique_name} pipelines") or [],
                    driver_mode=parse_json_text(drivermode_json, f"{unique_name} driver mode"),
                )
            except ConfigFormatError as exc:
                self._logger.warning("Skipping camera %s with malformed settings: %s", unique_name, exc)
                continue
            config.add_camera_config(unique_name, camera)

        self._config = config
        self._logger.info(
            "Loaded settings from %s (%d cameras)", self.db_path, len(config.camera_configurations)
        )

    def save_to_disk(self) -> bool:
        if not self.ensure_root():
            return False

        config = self._config
        global_rows = [
            (HARDWARE_CONFIG_NAME, dump_json(config.hardware_config.to_dict())),
            (HARDWARE_SETTINGS_NAME, dump_json(config.hardware_settings.to_dict())),
            (NETWORK_SETTINGS_NAME, dump_json(config.network_config.to_dict())),
        ]
        camera_rows = [
            (
                name,
                dump_json(camera.to_dict()),
                dump_json(camera.driver_mode),
                dump_json(camera.pipeline_settings),
            )
            for name, camera in config.camera_items()
        ]

        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.executemany(
                        "INSERT OR REPLACE INTO global (filename, contents) VALUES (?, ?)", global_rows
                    )
                    conn.execute("DELETE FROM cameras")
                    conn.executemany(
                        "INSERT INTO cameras (unique_name, config_json, drivermode_json, pipeline_jsons)"
                        " VALUES (?, ?, ?, ?)",
                        camera_rows,
                    )
        except sqlite3.Error as exc:
            self._logger.error("Could not save settings database %s: %s", self.db_path, exc)
            return False

        self._logger.debug("Saved %d cameras to %s", len(camera_rows), self.db_path)
        return True


__all__ = ["SqlConfigProvider"]
