"""
Settings archive export/import.

Export packs the whole configuration root into a zip. Import is destructive:
the existing root is deleted before the uploaded contents are committed and
there is no rollback if that commit fails.
"""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path
from typing import Optional, Union

from .errors import ArchiveFormatError
from .logging_utils import LoggerLike, ensure_structured_logger
from .migration import LegacyMigrator, has_legacy_layout
from .paths import export_archive_path, import_staging_dir


class SettingsArchiver:
    """Moves a configuration root in and out of zip archives."""

    def __init__(
        self,
        root: Union[str, Path],
        *,
        migrator: Optional[LegacyMigrator] = None,
        export_path: Optional[Path] = None,
        staging_dir: Optional[Path] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.root = Path(root)
        self.migrator = migrator or LegacyMigrator()
        self.export_path = Path(export_path) if export_path else export_archive_path()
        self.staging_dir = Path(staging_dir) if staging_dir else import_staging_dir()
        self._logger = ensure_structured_logger(logger, fallback_name="Archiver")

    # ------------------------------------------------------------------
    # Export

    def export_settings_archive(self) -> Path:
        """Zip the root to ``export_path`` and return that path.

        Failures are logged only; callers check that the returned file exists.
        """
        out = self.export_path
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.unlink(missing_ok=True)
            with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zipf:
                if self.root.is_dir():
                    for file_path in sorted(self.root.rglob("*")):
                        if file_path.is_file():
                            zipf.write(file_path, file_path.relative_to(self.root).as_posix())
            self._logger.info("Exported settings from %s to %s", self.root, out)
        except (OSError, zipfile.BadZipFile) as exc:
            self._logger.error("Failed to pack settings archive %s: %s", out, exc)
        return out

    # ------------------------------------------------------------------
    # Import

    def import_settings_archive(self, upload_path: Union[str, Path]) -> bool:
        """Replace the root with the contents of ``upload_path``.

        Raises:
            ArchiveFormatError: if the upload is not a usable zip. Nothing has
                been deleted at that point.
        """
        upload = Path(upload_path)
        self._validate_archive(upload)

        if not self._unpack(upload):
            return False

        self._logger.warning("Deleting settings root %s before import", self.root)
        shutil.rmtree(self.root, ignore_errors=True)

        if has_legacy_layout(self.staging_dir):
            self._logger.info("Uploaded archive uses the legacy layout; converting")
            return self.migrator.convert(self.staging_dir, self.root)

        try:
            shutil.copytree(self.staging_dir, self.root, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            self._logger.error("Exception copying uploaded settings into %s: %s", self.root, exc)
            return False

        self._logger.info("Copied uploaded settings into %s", self.root)
        return True

    def _validate_archive(self, upload: Path) -> None:
        try:
            with zipfile.ZipFile(upload) as zipf:
                names = zipf.namelist()
                bad = zipf.testzip()
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveFormatError(f"{upload.name} is not a readable zip archive: {exc}") from exc

        if bad is not None:
            raise ArchiveFormatError(f"{upload.name} has a corrupt member: {bad}")

        staging = self.staging_dir.resolve()
        for name in names:
            target = (staging / name).resolve()
            if target != staging and staging not in target.parents:
                raise ArchiveFormatError(f"{upload.name} contains an unsafe path: {name}")

    def _unpack(self, upload: Path) -> bool:
        try:
            if self.staging_dir.exists():
                shutil.rmtree(self.staging_dir)
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(upload) as zipf:
                zipf.extractall(self.staging_dir)
        except (OSError, zipfile.BadZipFile) as exc:
            self._logger.error("Failed to unpack %s into %s: %s", upload, self.staging_dir, exc)
            return False
        return True


__all__ = ["SettingsArchiver"]
