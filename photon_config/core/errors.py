"""Typed failures raised by the configuration subsystem.

Routine I/O faults are never raised; they are logged and reported through
boolean results. Only format faults reach the caller as exceptions.
"""

from __future__ import annotations


class PhotonConfigError(Exception):
    """Base class for photon_config errors."""


class ConfigFormatError(PhotonConfigError, ValueError):
    """A settings payload could not be parsed into the expected shape."""


class LogNameParseError(ConfigFormatError):
    """A log file name does not follow the ``photonvision-<date>.log`` pattern."""


class ArchiveFormatError(ConfigFormatError):
    """An uploaded settings archive is not a usable zip file."""


class UnsupportedStorageStrategyError(PhotonConfigError):
    """The requested storage backend has no implementation."""


__all__ = [
    "PhotonConfigError",
    "ConfigFormatError",
    "LogNameParseError",
    "ArchiveFormatError",
    "UnsupportedStorageStrategyError",
]
