"""
projects/storage.py

Key-value storage backends for saved projects.

The project manager only needs four operations (get, set, delete,
list_keys) on string values, so storage is injected rather than global:

- :class:`MemoryStorage` keeps everything in a dict (tests, throwaway sessions)
- :class:`JsonDirectoryStorage` writes one ``<key>.json`` file per key
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from debug_trace import trace


class StorageBackend:
    """Interface of a string key-value store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def list_keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStorage(StorageBackend):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def list_keys(self) -> List[str]:
        return list(self._data)


class JsonDirectoryStorage(StorageBackend):
    """One UTF-8 file per key inside *directory*.

    Keys are percent-encoded into file names so any project name is safe.

    Args:
        directory: Folder holding the files; created on first write.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (quote(key, safe="") + self.SUFFIX)

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)
        trace(f"stored {key!r} -> {path}", "STORAGE")

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def list_keys(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return [
            unquote(p.name[: -len(self.SUFFIX)])
            for p in self.directory.iterdir()
            if p.is_file() and p.name.endswith(self.SUFFIX)
        ]
