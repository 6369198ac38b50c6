"""Content store interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class ContentStore(ABC):
    """Key/value object store holding the site sources and generated content."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read an object. Raises KeyNotFoundError when absent."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Write an object, replacing any existing one."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether an object exists."""

    @abstractmethod
    def list_keys(self, prefix: str) -> List[str]:
        """List all keys under a prefix."""

    @abstractmethod
    def materialize(self, prefix: str) -> Path:
        """Return a local directory holding the tree under prefix."""

    @abstractmethod
    def put_tree(self, local_dir: Path, prefix: str) -> int:
        """Upload a local directory tree under prefix. Returns the file count."""

    def put_text(self, key: str, text: str) -> None:
        """Write a UTF-8 text object."""
        self.put(key, text.encode("utf-8"))
