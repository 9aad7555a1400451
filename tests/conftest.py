"""Shared pytest configuration and fixtures for the photon_config test suite."""

import json
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from photon_config.storage.models import (  # noqa: E402
    CameraConfiguration,
    HardwareConfig,
    HardwareSettings,
    NetworkConfig,
    PhotonConfiguration,
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


def make_camera(name: str, *, fov: float = 70.0, pipelines: int = 2) -> CameraConfiguration:
    return CameraConfiguration(
        unique_name=name,
        base_name=f"{name} base",
        nickname=name.lower().replace(" ", "_"),
        path=f"/dev/v4l/by-id/{name.replace(' ', '_')}",
        fov=fov,
        current_pipeline_index=1 if pipelines > 1 else 0,
        calibrations=[{"resolution": {"width": 640, "height": 480}, "cameraIntrinsics": [1.0, 0.0, 320.0]}],
        pipeline_settings=[
            {"pipelineType": "Reflective", "pipelineNickname": f"pipe {index}", "exposure": 10 + index}
            for index in range(pipelines)
        ],
        driver_mode={"exposure": 42, "brightness": 50},
    )


@pytest.fixture
def sample_config() -> PhotonConfiguration:
    """A populated aggregate with two cameras and non-default global records."""
    config = PhotonConfiguration(
        hardware_config=HardwareConfig(device_name="Limelight", led_pins=[13, 18], vendor_fov=75.76),
        hardware_settings=HardwareSettings(led_brightness_percentage=40),
        network_config=NetworkConfig(team_number=1234, connection_type="STATIC", static_ip="10.12.34.11"),
    )
    for camera in (make_camera("USB Camera 0"), make_camera("Pi Cam", fov=62.2, pipelines=3)):
        config.add_camera_config(camera.unique_name, camera)
    return config


def write_legacy_layout(root: Path, config: PhotonConfiguration) -> Path:
    """Write ``config`` in the directory-per-camera layout by hand."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "hardwareConfig.json").write_text(json.dumps(config.hardware_config.to_dict()), encoding="utf-8")
    (root / "hardwareSettings.json").write_text(json.dumps(config.hardware_settings.to_dict()), encoding="utf-8")
    (root / "networkSettings.json").write_text(json.dumps(config.network_config.to_dict()), encoding="utf-8")
    for index, (name, camera) in enumerate(config.camera_items()):
        camera_dir = root / "cameras" / f"camera{index}"
        (camera_dir / "pipelines").mkdir(parents=True)
        (camera_dir / "config.json").write_text(json.dumps(camera.to_dict()), encoding="utf-8")
        (camera_dir / "drivermode.json").write_text(json.dumps(camera.driver_mode), encoding="utf-8")
        for p_index, pipeline in enumerate(camera.pipeline_settings):
            (camera_dir / "pipelines" / f"{p_index}.json").write_text(json.dumps(pipeline), encoding="utf-8")
    return root


@pytest.fixture
def legacy_root(tmp_path, sample_config) -> Path:
    """A configuration root holding only the legacy layout of ``sample_config``."""
    return write_legacy_layout(tmp_path / "legacy_root", sample_config)
