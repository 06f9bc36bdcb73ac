"""
Local key-value storage for guest state.

A guest has no account, so their cart and wishlist live in a small key-value
store that stands in for the browser's local storage. Values are raw bytes;
callers own the encoding.
"""
import asyncio
import logging
import os
import tempfile
from typing import Dict, Optional, Protocol
from urllib.parse import quote

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the local store cannot be read or written."""


class LocalStore(Protocol):
    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class MemoryLocalStore:
    """Process-local store, used for tests and single-process dev runs."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileLocalStore:
    """One file per key under ``directory``. Writes replace the file atomically."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + ".json")

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def _write(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning(f"Could not remove temp file {tmp_path}")
            raise StorageError(f"Failed to write {key}: {e}") from e

    def _delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._write, key, value)
        logger.debug(f"Wrote local key {key} ({len(value)} bytes)")

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)
