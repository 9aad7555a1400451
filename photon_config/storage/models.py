"""Configuration aggregate persisted by the storage backends.

Field contents of pipelines, driver mode and calibrations are treated as
opaque mappings; only the envelope is typed. Keys are stored in the camelCase
form used by earlier releases so legacy files load unchanged.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from photon_config.core.errors import ConfigFormatError


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigFormatError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _typed(data: Mapping[str, Any], key: str, kind, default, what: str):
    if key not in data or data[key] is None:
        return copy.deepcopy(default)
    value = data[key]
    # bool is an int subclass; never accept it where a number is expected
    if kind in (int, float) and isinstance(value, bool):
        raise ConfigFormatError(f"{what}.{key} must be {kind.__name__}, got bool")
    if kind is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, kind):
        expected = kind.__name__ if isinstance(kind, type) else "/".join(k.__name__ for k in kind)
        raise ConfigFormatError(f"{what}.{key} must be {expected}, got {type(value).__name__}")
    return copy.deepcopy(value)


def _extras(data: Mapping[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    known_keys = set(known)
    return {key: copy.deepcopy(value) for key, value in data.items() if key not in known_keys}


@dataclass
class CameraConfiguration:
    """Persisted settings for one camera, keyed by ``unique_name``."""

    unique_name: str
    base_name: str = ""
    nickname: str = ""
    path: str = ""
    fov: float = 70.0
    current_pipeline_index: int = 0
    calibrations: List[Dict[str, Any]] = field(default_factory=list)
    pipeline_settings: List[Dict[str, Any]] = field(default_factory=list)
    driver_mode: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("uniqueName", "baseName", "nickname", "path", "FOV", "currentPipelineIndex", "calibrations")

    def to_dict(self) -> Dict[str, Any]:
        """Camera envelope as written to ``config.json`` / ``config_json``.

        Pipelines and driver mode are stored separately by each backend.
        """
        data = dict(copy.deepcopy(self.extras))
        data.update({
            "uniqueName": self.unique_name,
            "baseName": self.base_name,
            "nickname": self.nickname,
            "path": self.path,
            "FOV": self.fov,
            "currentPipelineIndex": self.current_pipeline_index,
            "calibrations": copy.deepcopy(self.calibrations),
        })
        return data

    @classmethod
    def from_dict(
        cls,
        data: Any,
        *,
        unique_name: Optional[str] = None,
        pipeline_settings: Optional[List[Any]] = None,
        driver_mode: Optional[Any] = None,
    ) -> "CameraConfiguration":
        what = "camera"
        data = _require_mapping(data, what)
        name = unique_name if unique_name is not None else _typed(data, "uniqueName", str, "", what)
        if not name:
            raise ConfigFormatError("camera.uniqueName is required")

        pipelines: List[Dict[str, Any]] = []
        for index, pipeline in enumerate(pipeline_settings or []):
            pipelines.append(dict(_require_mapping(pipeline, f"camera.pipelines[{index}]")))

        return cls(
            unique_name=name,
            base_name=_typed(data, "baseName", str, "", what),
            nickname=_typed(data, "nickname", str, "", what),
            path=_typed(data, "path", str, "", what),
            fov=_typed(data, "FOV", float, 70.0, what),
            current_pipeline_index=_typed(data, "currentPipelineIndex", int, 0, what),
            calibrations=_typed(data, "calibrations", list, [], what),
            pipeline_settings=pipelines,
            driver_mode=dict(_require_mapping(driver_mode, "camera.driverMode")) if driver_mode is not None else {},
            extras=_extras(data, cls._KEYS),
        )


@dataclass
class NetworkConfig:
    team_number: int = 0
    connection_type: str = "DHCP"
    static_ip: str = ""
    hostname: str = "photonvision"
    run_nt_server: bool = False
    should_manage: bool = True
    network_manager_iface: str = ""
    extras: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("teamNumber", "connectionType", "staticIp", "hostname", "runNTServer", "shouldManage", "networkManagerIface")
    CONNECTION_TYPES = ("DHCP", "STATIC")

    def to_dict(self) -> Dict[str, Any]:
        data = dict(copy.deepcopy(self.extras))
        data.update({
            "teamNumber": self.team_number,
            "connectionType": self.connection_type,
            "staticIp": self.static_ip,
            "hostname": self.hostname,
            "runNTServer": self.run_nt_server,
            "shouldManage": self.should_manage,
            "networkManagerIface": self.network_manager_iface,
        })
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "NetworkConfig":
        what = "networkSettings"
        data = _require_mapping(data, what)
        connection_type = _typed(data, "connectionType", str, "DHCP", what).upper()
        if connection_type not in cls.CONNECTION_TYPES:
            raise ConfigFormatError(f"{what}.connectionType must be one of {cls.CONNECTION_TYPES}")
        return cls(
            team_number=_typed(data, "teamNumber", int, 0, what),
            connection_type=connection_type,
            static_ip=_typed(data, "staticIp", str, "", what),
            hostname=_typed(data, "hostname", str, "photonvision", what),
            run_nt_server=_typed(data, "runNTServer", bool, False, what),
            should_manage=_typed(data, "shouldManage", bool, True, what),
            network_manager_iface=_typed(data, "networkManagerIface", str, "", what),
            extras=_extras(data, cls._KEYS),
        )


@dataclass
class HardwareConfig:
    device_name: str = ""
    device_logo_path: str = ""
    support_url: str = ""
    led_pins: List[int] = field(default_factory=list)
    led_brightness_range: List[int] = field(default_factory=lambda: [0, 100])
    vendor_fov: float = -1.0
    extras: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("deviceName", "deviceLogoPath", "supportURL", "ledPins", "ledBrightnessRange", "vendorFOV")

    def to_dict(self) -> Dict[str, Any]:
        data = dict(copy.deepcopy(self.extras))
        data.update({
            "deviceName": self.device_name,
            "deviceLogoPath": self.device_logo_path,
            "supportURL": self.support_url,
            "ledPins": list(self.led_pins),
            "ledBrightnessRange": list(self.led_brightness_range),
            "vendorFOV": self.vendor_fov,
        })
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "HardwareConfig":
        what = "hardwareConfig"
        data = _require_mapping(data, what)
        led_pins = _typed(data, "ledPins", list, [], what)
        if not all(isinstance(pin, int) and not isinstance(pin, bool) for pin in led_pins):
            raise ConfigFormatError(f"{what}.ledPins must be a list of integers")
        return cls(
            device_name=_typed(data, "deviceName", str, "", what),
            device_logo_path=_typed(data, "deviceLogoPath", str, "", what),
            support_url=_typed(data, "supportURL", str, "", what),
            led_pins=led_pins,
            led_brightness_range=_typed(data, "ledBrightnessRange", list, [0, 100], what),
            vendor_fov=_typed(data, "vendorFOV", float, -1.0, what),
            extras=_extras(data, cls._KEYS),
        )


@dataclass
class HardwareSettings:
    led_brightness_percentage: int = 100
    extras: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("ledBrightnessPercentage",)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(copy.deepcopy(self.extras))
        data["ledBrightnessPercentage"] = self.led_brightness_percentage
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "HardwareSettings":
        what = "hardwareSettings"
        data = _require_mapping(data, what)
        brightness = _typed(data, "ledBrightnessPercentage", int, 100, what)
        if not 0 <= brightness <= 100:
            raise ConfigFormatError(f"{what}.ledBrightnessPercentage must be within 0..100")
        return cls(led_brightness_percentage=brightness, extras=_extras(data, cls._KEYS))


class CameraSource(Protocol):
    """Anything the vision pipeline hands over that carries a camera config."""

    camera_configuration: CameraConfiguration


@dataclass
class PhotonConfiguration:
    """Root aggregate: cameras by unique name plus network and hardware records."""

    hardware_config: HardwareConfig = field(default_factory=HardwareConfig)
    hardware_settings: HardwareSettings = field(default_factory=HardwareSettings)
    network_config: NetworkConfig = field(default_factory=NetworkConfig)
    camera_configurations: Dict[str, CameraConfiguration] = field(default_factory=dict)

    def add_camera_config(self, name: str, config: CameraConfiguration) -> None:
        self.camera_configurations[name] = config

    def add_camera_configs(self, sources: Iterable[CameraSource]) -> None:
        for source in sources:
            config = source.camera_configuration
            self.add_camera_config(config.unique_name, config)

    def set_network_config(self, config: NetworkConfig) -> None:
        self.network_config = config

    def set_hardware_config(self, config: HardwareConfig) -> None:
        self.hardware_config = config

    def set_hardware_settings(self, settings: HardwareSettings) -> None:
        self.hardware_settings = settings

    def camera_items(self) -> List[tuple[str, CameraConfiguration]]:
        """Stable snapshot of the camera map, safe while other threads add entries."""
        return sorted(list(self.camera_configurations.items()), key=lambda item: item[0])

    def to_dict(self) -> Dict[str, Any]:
        cameras = {}
        for name, camera in self.camera_items():
            entry = camera.to_dict()
            entry["pipelineSettings"] = copy.deepcopy(camera.pipeline_settings)
            entry["driverMode"] = copy.deepcopy(camera.driver_mode)
            cameras[name] = entry
        return {
            "hardwareConfig": self.hardware_config.to_dict(),
            "hardwareSettings": self.hardware_settings.to_dict(),
            "networkSettings": self.network_config.to_dict(),
            "cameraConfigurations": cameras,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PhotonConfiguration":
        data = _require_mapping(data, "configuration")
        config = cls(
            hardware_config=HardwareConfig.from_dict(data.get("hardwareConfig") or {}),
            hardware_settings=HardwareSettings.from_dict(data.get("hardwareSettings") or {}),
            network_config=NetworkConfig.from_dict(data.get("networkSettings") or {}),
        )
        cameras = _require_mapping(data.get("cameraConfigurations") or {}, "cameraConfigurations")
        for name, entry in cameras.items():
            entry = _require_mapping(entry, f"cameraConfigurations.{name}")
            envelope = {k: v for k, v in entry.items() if k not in ("pipelineSettings", "driverMode")}
            config.add_camera_config(
                name,
                CameraConfiguration.from_dict(
                    envelope,
                    unique_name=name,
                    pipeline_settings=entry.get("pipelineSettings") or [],
                    driver_mode=entry.get("driverMode"),
                ),
            )
        return config


__all__ = [
    "CameraConfiguration",
    "CameraSource",
    "HardwareConfig",
    "HardwareSettings",
    "NetworkConfig",
    "PhotonConfiguration",
]
