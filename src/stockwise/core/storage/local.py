"""
Local filesystem document store.

Documents live as UTF-8 files under ``base_path``; backups go to
``base_path/backups`` as ``<stem>.backup.<timestamp><suffix>``.
"""

import asyncio
import os
import shutil
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from .base import DocumentStore, StorageError, StorageKeyError, StoragePermissionError

_BACKUP_DIR_NAME = "backups"


class LocalDocumentStore(DocumentStore):
    """Local filesystem document store."""

    def __init__(self, base_path: str = "~/.stockwise-data", backup_dir: str | None = None, **config):
        super().__init__(**config)
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        if backup_dir:
            self.backup_path = Path(backup_dir).expanduser().resolve()
        else:
            self.backup_path = self.base_path / _BACKUP_DIR_NAME

    def _get_full_path(self, key: str) -> Path:
        """Resolve a document key to an absolute path under ``base_path``.

        Rejects unsafe keys (absolute paths, traversal, empty keys, and
        backslash-delimited paths) to prevent writes outside ``base_path``.
        """
        raw_key = key.strip()
        if not raw_key:
            raise StoragePermissionError("Document key cannot be empty.")
        if "\x00" in raw_key:
            raise StoragePermissionError("Document key cannot contain null bytes.")
        if "\\" in raw_key:
            raise StoragePermissionError("Document key cannot contain backslashes. Use '/' separators.")

        key_path = Path(raw_key)
        if key_path.is_absolute() or raw_key.startswith("~"):
            raise StoragePermissionError(f"Unsafe document key '{key}': absolute paths are not allowed.")

        full_path = (self.base_path / key_path).resolve()
        try:
            full_path.relative_to(self.base_path)
        except ValueError as e:
            raise StoragePermissionError(f"Unsafe document key '{key}': path traversal is not allowed.") from e
        return full_path

    def _backup_name(self, path: Path) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return f"{path.stem}.backup.{timestamp}{path.suffix}"

    async def read(self, key: str) -> str:
        path = self._get_full_path(key)
        if not path.exists():
            raise StorageKeyError(f"Document not found: {key}")

        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot read {path}: {e}") from e
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    async def write(self, key: str, text: str) -> str | None:
        path = self._get_full_path(key)

        backup = None
        if path.exists():
            backup = await self._backup(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(text)
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot write to {path}: {e}") from e
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Cannot write to {path}: {e}") from e

        logger.debug(f"Wrote {key} ({len(text)} chars)")
        return backup

    async def _backup(self, path: Path) -> str | None:
        """Copy the current file into the backup directory.

        A failed backup is logged and the write goes ahead.
        """
        dest = self.backup_path / self._backup_name(path)
        try:
            self.backup_path.mkdir(parents=True, exist_ok=True)
            await asyncio.get_running_loop().run_in_executor(None, shutil.copy2, path, dest)
        except OSError as e:
            logger.warning(f"Backup of {path.name} failed, continuing with write: {e}")
            return None
        logger.debug(f"Backed up {path.name} -> {dest.name}")
        return str(dest)

    async def exists(self, key: str) -> bool:
        return self._get_full_path(key).exists()

    async def list_backups(self, key: str) -> list[str]:
        path = self._get_full_path(key)
        if not self.backup_path.exists():
            return []
        prefix = f"{path.stem}.backup."
        names = [
            name
            for name in await aiofiles.os.listdir(self.backup_path)
            if name.startswith(prefix) and name.endswith(path.suffix)
        ]
        return [str(self.backup_path / name) for name in sorted(names, reverse=True)]

    async def check_available(self) -> None:
        if not self.base_path.is_dir():
            raise StorageError(f"Document directory does not exist: {self.base_path}")
        if not os.access(self.base_path, os.R_OK | os.W_OK):
            raise StoragePermissionError(f"Document directory is not readable and writable: {self.base_path}")
