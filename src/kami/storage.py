"""Filesystem access behind a small adapter interface."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .config import ARTICLE_GLOB


class StorageAdapter(Protocol):
    """File operations the core needs. Paths are absolute."""

    def read_file(self, path: Path) -> str: ...

    def write_file(self, path: Path, content: str) -> None: ...

    def delete_file(self, path: Path) -> None: ...

    def exists(self, path: Path) -> bool: ...

    def mkdir(self, path: Path) -> None: ...

    def list_files(self, directory: Path, pattern: str = ARTICLE_GLOB) -> list[Path]: ...


class LocalStorage:
    """Local filesystem storage adapter."""

    def read_file(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_file(self, path: Path, content: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def delete_file(self, path: Path) -> None:
        Path(path).unlink()

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def mkdir(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def list_files(self, directory: Path, pattern: str = ARTICLE_GLOB) -> list[Path]:
        directory = Path(directory)
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.glob(pattern) if p.is_file())


default_storage = LocalStorage()
