"""String-keyed durable stores backing the persistent cache."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from fleetview.exceptions import FleetStorageError

_logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal async key/value contract.

    ``get`` returns ``None`` for a missing key.  Both methods raise
    :class:`FleetStorageError` on I/O failure.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store. Contents are lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data


class FileStore:
    """One UTF-8 file per key inside ``directory``.

    Writes go to a temporary file in the same directory and are moved
    into place with :func:`os.replace`, so a reader never observes a
    half-written value.  File I/O runs in the default executor.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        if not key:
            raise ValueError("cache key must be non-empty")
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    async def get(self, key: str) -> str | None:
        path = self.path_for(key)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._read, path)
        except OSError as exc:
            raise FleetStorageError(f"Failed to read {path}: {exc}", key=key) from exc

    async def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write, path, value)
        except OSError as exc:
            raise FleetStorageError(f"Failed to write {path}: {exc}", key=key) from exc

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @staticmethod
    def _write(path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise
        _logger.debug("Wrote %d bytes to %s", len(value), path)

