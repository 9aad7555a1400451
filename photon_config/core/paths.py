"""Path constants and naming rules for the configuration root."""

from __future__ import annotations

import os
import re
import tempfile
from datetime import datetime
from pathlib import Path

from .errors import LogNameParseError

# Default root, relative to the working directory like previous releases.
DEFAULT_ROOT_DIR = Path("photonvision_config")
ROOT_DIR_ENV = "PHOTON_CONFIG_ROOT"

# Shared subdirectories of the root
LOGS_DIRNAME = "logs"
CALIB_DIRNAME = "calibImgs"
IMAGE_SAVES_DIRNAME = "imgSaves"

# Backend artifacts
SQL_DATABASE_NAME = "photon.sqlite"
LEGACY_CAMERAS_DIRNAME = "cameras"
LEGACY_CAMERAS_BACKUP_DIRNAME = "cameras_backup"
HARDWARE_CONFIG_NAME = "hardwareConfig"
HARDWARE_SETTINGS_NAME = "hardwareSettings"
NETWORK_SETTINGS_NAME = "networkSettings"

# Archive locations
EXPORT_ARCHIVE_NAME = "photonvision-settings.zip"
EXPORT_DOWNLOAD_NAME = "photonvision-settings-export.zip"
IMPORT_STAGING_DIRNAME = "photonvision"

# Log file naming
LOG_PREFIX = "photonvision-"
LOG_EXT = ".log"
LOG_DATE_TIME_FORMAT = "yyyy-M-d_hh-mm-ss"
_LOG_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})_(\d{1,2})-(\d{1,2})-(\d{1,2})$")


def default_root_dir() -> Path:
    override = os.environ.get(ROOT_DIR_ENV)
    return Path(override).expanduser() if override else DEFAULT_ROOT_DIR


def temp_dir() -> Path:
    return Path(tempfile.gettempdir())


def export_archive_path() -> Path:
    return temp_dir() / EXPORT_ARCHIVE_NAME


def import_staging_dir() -> Path:
    return temp_dir() / IMPORT_STAGING_DIRNAME


def ta_to_log_fname(moment: datetime) -> str:
    """Format ``moment`` as ``photonvision-yyyy-M-d_hh-mm-ss.log``.

    ``hh`` is the 12-hour clock hour, zero padded, with no AM/PM marker.
    """
    hour12 = moment.hour % 12 or 12
    stamp = (
        f"{moment.year:04d}-{moment.month}-{moment.day}"
        f"_{hour12:02d}-{moment.minute:02d}-{moment.second:02d}"
    )
    return f"{LOG_PREFIX}{stamp}{LOG_EXT}"


def log_fname_to_date(fname: str) -> datetime:
    """Parse a log file name produced by :func:`ta_to_log_fname`.

    The hour is read back as a 12-hour value without a marker, so 12
    maps to 0 and every result lies in the morning half of the day.

    Raises:
        LogNameParseError: if the remainder does not match the date pattern.
    """
    stamp = fname.removeprefix(LOG_PREFIX).removesuffix(LOG_EXT)
    match = _LOG_DATE_RE.match(stamp)
    if match is None:
        raise LogNameParseError(f"Unparseable log file name: {fname!r}")

    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    if not 1 <= hour <= 12:
        raise LogNameParseError(f"Hour out of range in log file name: {fname!r}")
    try:
        return datetime(year, month, day, hour % 12, minute, second)
    except ValueError as exc:
        raise LogNameParseError(f"Invalid date in log file name {fname!r}: {exc}") from exc


__all__ = [
    "DEFAULT_ROOT_DIR",
    "ROOT_DIR_ENV",
    "LOGS_DIRNAME",
    "CALIB_DIRNAME",
    "IMAGE_SAVES_DIRNAME",
    "SQL_DATABASE_NAME",
    "LEGACY_CAMERAS_DIRNAME",
    "LEGACY_CAMERAS_BACKUP_DIRNAME",
    "HARDWARE_CONFIG_NAME",
    "HARDWARE_SETTINGS_NAME",
    "NETWORK_SETTINGS_NAME",
    "EXPORT_ARCHIVE_NAME",
    "EXPORT_DOWNLOAD_NAME",
    "IMPORT_STAGING_DIRNAME",
    "LOG_PREFIX",
    "LOG_EXT",
    "LOG_DATE_TIME_FORMAT",
    "default_root_dir",
    "temp_dir",
    "export_archive_path",
    "import_staging_dir",
    "ta_to_log_fname",
    "log_fname_to_date",
]
