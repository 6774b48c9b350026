# src/storage/base_output_writer.py — v1
"""Abstract output writer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when persisting or reading run data fails at the I/O level."""


class BaseOutputWriter(ABC):
    """Unified interface for storage backends.

    Implementations raise StorageError for I/O failures. `read` raises
    FileNotFoundError when the path does not exist so callers can treat
    absence separately from failure.
    """

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to the given path: fully, or not at all."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read content from the given path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def ensure_dir(self, path: str) -> None:
        """Create a directory (and parents) if missing."""

    @abstractmethod
    async def list_dir(self, path: str) -> list[str]:
        """List immediate entries of a directory (names only, sorted)."""

    @abstractmethod
    async def list_files(self, path: str) -> list[str]:
        """List files below a directory as sorted relative POSIX paths."""
