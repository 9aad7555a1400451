"""Storage backend capability shared by every on-disk layout."""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from photon_config.core.errors import ConfigFormatError
from photon_config.core.logging_utils import LoggerLike, ensure_structured_logger

from .models import HardwareConfig, HardwareSettings, NetworkConfig, PhotonConfiguration

T = TypeVar("T")


class StorageStrategy(str, Enum):
    """Which backend owns the configuration root."""

    SQL = "sql"
    LEGACY = "legacy"
    ATOMIC_ZIP = "atomic_zip"  # reserved, no implementation yet

    @classmethod
    def parse(cls, value: Union[str, "StorageStrategy"]) -> "StorageStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown storage strategy '{value}' (expected one of: {choices})") from None


def dump_json(payload: Any) -> str:
    """Deterministic JSON so repeated saves of the same state are byte-identical."""
    return json.dumps(payload, indent=2, sort_keys=True)


class ConfigProvider(ABC):
    """Reads and writes one configuration aggregate under ``root``.

    ``load`` never raises: an absent or unreadable root yields a default
    aggregate and a log entry. ``save_to_disk`` writes a full snapshot and
    reports success as a bool, so two calls without a mutation in between
    leave identical state on disk.
    """

    strategy: StorageStrategy

    def __init__(self, root: Union[str, Path], *, logger: LoggerLike = None) -> None:
        self.root = Path(root)
        self._logger = ensure_structured_logger(logger, fallback_name=type(self).__name__)
        self._config = PhotonConfiguration()
        # Serializes writers on layouts without their own locking
        self._save_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Aggregate access

    def get_config(self) -> PhotonConfiguration:
        return self._config

    def set_config(self, config: PhotonConfiguration) -> None:
        self._config = config

    def clear_config(self) -> None:
        self._config = PhotonConfiguration()

    # ------------------------------------------------------------------
    # Backend specific

    @abstractmethod
    def load(self) -> None:
        """Populate the in-memory aggregate from ``root``."""

    @abstractmethod
    def save_to_disk(self) -> bool:
        """Persist the full current aggregate."""

    # ------------------------------------------------------------------
    # Targeted uploads

    def save_uploaded_hardware_config(self, upload_path: Union[str, Path]) -> bool:
        return self._save_uploaded(
            upload_path, HardwareConfig.from_dict, lambda record: self._config.set_hardware_config(record)
        )

    def save_uploaded_hardware_settings(self, upload_path: Union[str, Path]) -> bool:
        return self._save_uploaded(
            upload_path, HardwareSettings.from_dict, lambda record: self._config.set_hardware_settings(record)
        )

    def save_uploaded_network_config(self, upload_path: Union[str, Path]) -> bool:
        return self._save_uploaded(
            upload_path, NetworkConfig.from_dict, lambda record: self._config.set_network_config(record)
        )

    def _save_uploaded(
        self,
        upload_path: Union[str, Path],
        parse: Callable[[Any], T],
        apply: Callable[[T], None],
    ) -> bool:
        path = Path(upload_path)
        try:
            record = parse(read_json_file(path))
        except OSError as exc:
            self._logger.error("Could not read uploaded file %s: %s", path, exc)
            return False
        except ConfigFormatError as exc:
            self._logger.error("Rejected uploaded file %s: %s", path, exc)
            return False

        apply(record)
        self._logger.info("Applied uploaded %s from %s", type(record).__name__, path.name)
        return self.save_to_disk()

    def ensure_root(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as exc:
            self._logger.error("Could not create configuration root %s: %s", self.root, exc)
            return False

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"{type(self).__name__}(root={str(self.root)!r})"


def read_json_file(path: Path) -> Any:
    """Read ``path`` as JSON, turning decode failures into ConfigFormatError."""
    raw = path.read_bytes()
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigFormatError(f"{path.name} is not valid JSON: {exc}") from exc


def parse_json_text(text: Optional[str], what: str) -> Any:
    if text is None or text == "":
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigFormatError(f"{what} is not valid JSON: {exc}") from exc


__all__ = [
    "ConfigProvider",
    "StorageStrategy",
    "dump_json",
    "parse_json_text",
    "read_json_file",
]
