from __future__ import annotations
"""Local filesystem access used while planning and executing a sync."""
from pathlib import Path


class LocalStorage:
    """Thin wrapper over the local filesystem so planning can be faked in tests."""

    def exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def size_of(self, path: str | Path) -> int:
        target = Path(path)
        if target.is_dir():
            raise IsADirectoryError(str(target))
        return target.stat().st_size

    def parent_directory_of(self, path: str | Path) -> Path:
        return Path(path).parent

    def create_directories(self, path: str | Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
