"""
File-system storage for macros: one JSON document per macro.
"""

from __future__ import annotations
import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from macroreplay.config import DEFAULT_MACRO_DIRECTORY
from macroreplay.errors import StorageError
from macroreplay.models.macro import FORMAT_VERSION, Macro, MacroInfo
from macroreplay.platform.base import MacroStore

logger = logging.getLogger(__name__)

BACKUP_METADATA_FILE = "backup_metadata.json"


def _format_for(path: Path) -> str:
    return "yaml" if path.suffix.lower() in (".yaml", ".yml") else "json"


class FileMacroStore(MacroStore):
    """
    Stores each macro as ``<id>.json`` in a directory.

    Missing macros are reported as None/False; I/O and parse failures raise
    StorageError with a message suitable for showing to the user.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or DEFAULT_MACRO_DIRECTORY).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, macro_id: str) -> Path:
        if not macro_id or Path(macro_id).name != macro_id:
            raise StorageError(f"Invalid macro id: {macro_id!r}")
        return self.directory / f"{macro_id}.json"

    def save_macro(self, macro: Macro) -> bool:
        path = self._path_for(macro.id)
        try:
            path.write_text(macro.to_json(), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save macro {macro.name!r}: {e}") from e
        logger.info(f"Saved macro {macro.id} to {path}")
        return True

    def load_macro(self, macro_id: str) -> Optional[Macro]:
        path = self._path_for(macro_id)
        if not path.exists():
            return None
        return self._read(path)

    def delete_macro(self, macro_id: str) -> bool:
        path = self._path_for(macro_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete macro {macro_id}: {e}") from e
        logger.info(f"Deleted macro {macro_id}")
        return True

    def list_macros(self) -> List[MacroInfo]:
        infos = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                infos.append(MacroInfo.from_macro(self._read(path)))
            except StorageError as e:
                logger.warning(f"Skipping unreadable macro file {path.name}: {e}")
        return sorted(infos, key=lambda info: info.name.lower())

    def export_macro(self, macro: Macro, path: Path) -> bool:
        path = Path(path)
        try:
            macro.export(path, format=_format_for(path))
        except OSError as e:
            raise StorageError(f"Failed to export macro to {path}: {e}") from e
        logger.info(f"Exported macro {macro.id} to {path}")
        return True

    def import_macro(self, path: Path) -> Optional[Macro]:
        path = Path(path)
        if not path.exists():
            return None
        return self._read(path)

    def check_storage_access(self) -> bool:
        """Whether the macro directory exists and is readable and writable."""
        return self.directory.is_dir() and os.access(self.directory, os.R_OK | os.W_OK)

    def create_backup(self, path: Path) -> bool:
        """Copy every macro document into the directory ``path``."""
        backup_dir = Path(path)
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            macro_files = sorted(self.directory.glob("*.json"))
            for macro_file in macro_files:
                shutil.copy2(macro_file, backup_dir / macro_file.name)

            metadata = {
                "created": datetime.now(timezone.utc).isoformat(),
                "version": FORMAT_VERSION,
                "macro_count": len(macro_files),
            }
            (backup_dir / BACKUP_METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to create backup at {backup_dir}: {e}") from e

        logger.info(f"Backed up {len(macro_files)} macros to {backup_dir}")
        return True

    def restore_backup(self, path: Path) -> bool:
        """Copy valid macro documents from a backup directory into the store."""
        backup_dir = Path(path)
        if not backup_dir.is_dir():
            return False

        restored = 0
        for backup_file in sorted(backup_dir.glob("*.json")):
            if backup_file.name == BACKUP_METADATA_FILE:
                continue
            try:
                macro = self._read(backup_file)
            except StorageError as e:
                logger.warning(f"Skipping {backup_file.name} during restore: {e}")
                continue
            self.save_macro(macro)
            restored += 1

        logger.info(f"Restored {restored} macros from {backup_dir}")
        return True

    def _read(self, path: Path) -> Macro:
        try:
            return Macro.from_file(path)
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        except (ValidationError, ValueError, yaml.YAMLError) as e:
            raise StorageError(f"{path.name} is not a valid macro document: {e}") from e
