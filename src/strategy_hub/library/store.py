"""Durable key-value stores for serialized blobs."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from strategy_hub.errors import PersistenceError

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """Named-slot blob storage."""

    def get(self, key: str) -> str | None:
        """Return the blob stored under ``key`` or None when the slot is empty."""

    def set(self, key: str, blob: str) -> None:
        """Replace the blob under ``key``. Raises PersistenceError on failure."""


class MemoryKeyValueStore:
    """In-process store, mainly for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._slots: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._slots.get(key)

    def set(self, key: str, blob: str) -> None:
        self._slots[key] = blob


class FileKeyValueStore:
    """One ``<key>.json`` file per slot inside a directory."""

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = root_dir
        self._root_dir.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"store_read_failed: {path}: {exc}") from exc

    def set(self, key: str, blob: str) -> None:
        path = self._path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._root_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(blob)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"store_write_failed: {path}: {exc}") from exc

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise PersistenceError(f"invalid_store_key: {key}")
        return self._root_dir / f"{key}.json"
