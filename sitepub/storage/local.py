"""Filesystem backed content store."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from ..errors import KeyNotFoundError, StorageError
from .base import ContentStore


class LocalContentStore(ContentStore):
    """Store objects as files below a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if self.root.resolve() not in path.parents and path != self.root.resolve():
            raise StorageError(f"Key escapes store root: {key}")
        return path

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise KeyNotFoundError(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Replace atomically so readers never see a partial object
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def list_keys(self, prefix: str) -> List[str]:
        base = self._path(prefix) if prefix else self.root
        if not base.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in base.rglob("*")
            if p.is_file()
        )

    def materialize(self, prefix: str) -> Path:
        path = self._path(prefix)
        if not path.is_dir():
            raise KeyNotFoundError(prefix)
        return path

    def put_tree(self, local_dir: Path, prefix: str) -> int:
        target = self._path(prefix)
        if Path(local_dir).resolve() == target:
            return sum(1 for p in target.rglob("*") if p.is_file())
        try:
            shutil.copytree(local_dir, target, dirs_exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to publish {local_dir} to {prefix}: {e}") from e
        return sum(1 for p in Path(local_dir).rglob("*") if p.is_file())
