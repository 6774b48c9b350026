# src/storage/local_writer.py — v1
"""Local filesystem output writer (default backend)."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from iacdiagram.storage.base_output_writer import BaseOutputWriter, StorageError


class LocalWriter(BaseOutputWriter):
    """Write outputs to the local filesystem with atomic replace."""

    def __init__(self, base_path: str | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Root directory for all paths. If None, paths are used as given.
        """
        self._base = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        """Write via a temp file in the target directory, then os.replace."""
        p = self._resolve(path)
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent)
            )
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, p)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Cannot write {p}: {exc}") from exc

    async def read(self, path: str) -> bytes:
        p = self._resolve(path)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise StorageError(f"Cannot read {p}: {exc}") from exc

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def ensure_dir(self, path: str) -> None:
        p = self._resolve(path)
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory {p}: {exc}") from exc

    async def list_dir(self, path: str) -> list[str]:
        p = self._resolve(path)
        if not p.is_dir():
            return []
        try:
            return sorted(entry.name for entry in p.iterdir())
        except OSError as exc:
            raise StorageError(f"Cannot list {p}: {exc}") from exc

    async def list_files(self, path: str) -> list[str]:
        root = self._resolve(path)
        if not root.is_dir():
            return []
        try:
            return sorted(
                f.relative_to(root).as_posix() for f in root.rglob("*") if f.is_file()
            )
        except OSError as exc:
            raise StorageError(f"Cannot list {root}: {exc}") from exc
