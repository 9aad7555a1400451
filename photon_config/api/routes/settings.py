"""Settings Routes - import/export archives, targeted uploads, general and camera settings."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from aiohttp import web

from photon_config.core.config_manager import ConfigManager
from photon_config.core.errors import ArchiveFormatError, ConfigFormatError
from photon_config.core.logging_utils import get_module_logger
from photon_config.core.paths import EXPORT_DOWNLOAD_NAME
from photon_config.storage.models import CameraConfiguration, NetworkConfig

from ..middleware import create_error_response, create_success_response, parse_json_body


logger = get_module_logger("SettingsRoutes")

UPLOAD_FIELD = "data"
_CHUNK_SIZE = 64 * 1024


def setup_settings_routes(app: web.Application) -> None:
    """Register settings routes."""
    app.router.add_get("/api/settings", get_settings_handler)
    app.router.add_get("/api/settings/export", export_settings_handler)
    app.router.add_post("/api/settings/import", import_settings_handler)
    app.router.add_post("/api/settings/hardwareConfig", hardware_config_upload_handler)
    app.router.add_post("/api/settings/hardwareSettings", hardware_settings_upload_handler)
    app.router.add_post("/api/settings/networkConfig", network_config_upload_handler)
    app.router.add_post("/api/settings/general", general_settings_handler)
    app.router.add_post("/api/settings/camera", camera_settings_handler)
    app.router.add_post("/api/settings/clear", clear_settings_handler)


def _manager(request: web.Request) -> ConfigManager:
    return request.app["config_manager"]


async def receive_upload(
    request: web.Request, extension: str
) -> Tuple[Optional[Path], Optional[web.Response]]:
    """Stream the multipart ``data`` field to a temp file. Returns (path, error_response)."""
    missing = create_error_response(
        "MISSING_FILE", f"No File was sent with the request. Make sure that the file is sent at the key '{UPLOAD_FIELD}'."
    )
    if not request.content_type.startswith("multipart/"):
        return None, missing
    try:
        reader = await request.multipart()
    except (AssertionError, ValueError):
        return None, missing

    async for part in reader:
        if part.name != UPLOAD_FIELD:
            await part.release()
            continue
        filename = part.filename or ""
        if not filename.lower().endswith(f".{extension}"):
            return None, create_error_response(
                "WRONG_FILE_TYPE",
                f"The uploaded file was not of type '{extension}'. The uploaded file should be a .{extension} file.",
            )

        fd, tmp_name = tempfile.mkstemp(prefix="photon-upload-", suffix=f".{extension}")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            async with aiofiles.open(tmp_path, "wb") as out:
                while True:
                    chunk = await part.read_chunk(_CHUNK_SIZE)
                    if not chunk:
                        break
                    await out.write(chunk)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            logger.error("Failed to store uploaded file %s: %s", filename, exc)
            return None, create_error_response(
                "UPLOAD_FAILED", "There was an error while creating a temporary copy of the file", status=500
            )
        return tmp_path, None

    return None, missing


async def get_settings_handler(request: web.Request) -> web.Response:
    """GET /api/settings - Current configuration aggregate."""
    return web.json_response(_manager(request).get_config().to_dict())


async def export_settings_handler(request: web.Request) -> web.StreamResponse:
    """GET /api/settings/export - Zip of the whole settings directory."""
    archive = await asyncio.to_thread(_manager(request).export_settings_archive)
    if not archive.is_file():
        return create_error_response(
            "EXPORT_FAILED", "There was an error while exporting the settings archive", status=500
        )
    return web.FileResponse(
        archive,
        headers={
            "Content-Type": "application/zip",
            "Content-Disposition": f'attachment; filename="{EXPORT_DOWNLOAD_NAME}"',
        },
    )


async def import_settings_handler(request: web.Request) -> web.Response:
    """POST /api/settings/import - Replace all settings with an uploaded zip."""
    upload, err = await receive_upload(request, "zip")
    if err:
        return err
    try:
        success = await asyncio.to_thread(_manager(request).import_settings_archive, upload)
    except ArchiveFormatError as exc:
        return create_error_response("INVALID_ARCHIVE", str(exc))
    finally:
        upload.unlink(missing_ok=True)

    if success:
        return create_success_response("Successfully saved the uploaded settings zip")
    return create_error_response("IMPORT_FAILED", "There was an error while saving the uploaded zip file", status=500)


async def _targeted_upload(request: web.Request, method_name: str, label: str) -> web.Response:
    upload, err = await receive_upload(request, "json")
    if err:
        return err
    try:
        success = await asyncio.to_thread(getattr(_manager(request), method_name), upload)
    finally:
        upload.unlink(missing_ok=True)

    if success:
        return create_success_response(f"Successfully saved the uploaded {label}")
    return create_error_response("UPLOAD_REJECTED", f"There was an error while saving the uploaded {label}", status=500)


async def hardware_config_upload_handler(request: web.Request) -> web.Response:
    """POST /api/settings/hardwareConfig"""
    return await _targeted_upload(request, "save_uploaded_hardware_config", "hardware config")


async def hardware_settings_upload_handler(request: web.Request) -> web.Response:
    """POST /api/settings/hardwareSettings"""
    return await _targeted_upload(request, "save_uploaded_hardware_settings", "hardware settings")


async def network_config_upload_handler(request: web.Request) -> web.Response:
    """POST /api/settings/networkConfig"""
    return await _targeted_upload(request, "save_uploaded_network_config", "network config")


async def general_settings_handler(request: web.Request) -> web.Response:
    """POST /api/settings/general - Network settings as JSON.

    Malformed settings are rejected; the stored configuration is left as is.
    """
    body, err = await parse_json_body(request)
    if err:
        return err
    try:
        network_config = NetworkConfig.from_dict(body)
    except ConfigFormatError as exc:
        return create_error_response("MALFORMED_SETTINGS", f"The provided general settings were malformed: {exc}")

    _manager(request).set_network_settings(network_config)
    return create_success_response("Successfully saved general settings")


async def camera_settings_handler(request: web.Request) -> web.Response:
    """POST /api/settings/camera - Merge settings into one camera.

    Body: ``{"uniqueName": "...", "settings": {"FOV": 68.5, ...}}``. The camera
    may instead be picked with ``"index"``, its position in name order.
    """
    body, err = await parse_json_body(request)
    if err:
        return err
    settings = body.get("settings")
    if not isinstance(settings, dict):
        return create_error_response("MALFORMED_SETTINGS", "The provided camera settings were malformed")

    manager = _manager(request)
    unique_name = body.get("uniqueName")
    index = body.get("index")
    if unique_name is None and isinstance(index, int) and not isinstance(index, bool):
        names = [name for name, _ in manager.get_config().camera_items()]
        if not 0 <= index < len(names):
            return create_error_response("CAMERA_NOT_FOUND", f"No camera at index {index}", status=404)
        unique_name = names[index]
    if not isinstance(unique_name, str):
        return create_error_response("MALFORMED_SETTINGS", "Camera settings need a uniqueName or index")

    existing = manager.get_config().camera_configurations.get(unique_name)
    if existing is None:
        return create_error_response("CAMERA_NOT_FOUND", f"No camera named '{unique_name}'", status=404)

    merged = existing.to_dict()
    merged.update({k: v for k, v in settings.items() if k not in ("pipelineSettings", "driverMode")})
    try:
        updated = CameraConfiguration.from_dict(
            merged,
            unique_name=unique_name,
            pipeline_settings=settings.get("pipelineSettings", existing.pipeline_settings),
            driver_mode=settings.get("driverMode", existing.driver_mode),
        )
    except ConfigFormatError as exc:
        return create_error_response("MALFORMED_SETTINGS", f"The provided camera settings were malformed: {exc}")

    manager.save_module(updated, unique_name)
    return create_success_response("Successfully saved camera settings")


async def clear_settings_handler(request: web.Request) -> web.Response:
    """POST /api/settings/clear - Reset to an empty configuration and save immediately."""
    if await asyncio.to_thread(_manager(request).clear_config):
        return create_success_response("Cleared all settings")
    return create_error_response("CLEAR_FAILED", "Settings were cleared in memory but could not be saved", status=500)


__all__ = ["receive_upload", "setup_settings_routes"]
