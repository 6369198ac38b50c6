"""Build tool binary cache."""

import hashlib
import os
import stat
import tarfile
from pathlib import Path
from typing import Optional

import httpx
from rich.console import Console

from ..errors import BuildError

console = Console()


class HugoBinaryCache:
    """Fetch-if-absent cache of the Hugo release, keyed by version.

    The release tarball is kept in the cache directory. A missing or corrupt
    tarball is discarded and downloaded again; only a failed download is fatal.
    """

    def __init__(
        self,
        cache_dir: Path,
        version: str,
        url_template: str,
        sha256: Optional[str] = None,
        download_attempts: int = 2,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.version = version
        self.url = url_template.format(version=version)
        self.sha256 = sha256.lower() if sha256 else None
        self.download_attempts = download_attempts
        self._client = client

    @property
    def tarball_path(self) -> Path:
        return self.cache_dir / f"hugo_{self.version}.tar.gz"

    @property
    def binary_path(self) -> Path:
        return self.cache_dir / f"hugo_{self.version}" / "hugo"

    def _checksum(self, path: Path) -> str:
        digest = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(1 << 20), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def _is_valid(self, path: Path) -> bool:
        """Check that a cached tarball is intact and contains the binary."""
        if not path.is_file():
            return False
        if self.sha256 and self._checksum(path) != self.sha256:
            console.print(f"[yellow]Cached {path.name} fails checksum[/yellow]")
            return False
        try:
            with tarfile.open(path, "r:gz") as tar:
                return any(Path(m.name).name == "hugo" and m.isfile() for m in tar.getmembers())
        except (tarfile.TarError, OSError, EOFError):
            console.print(f"[yellow]Cached {path.name} is unreadable[/yellow]")
            return False

    def _download(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        partial = self.tarball_path.with_suffix(".part")
        console.print(f"[dim]Downloading {self.url}[/dim]")

        def stream(client: httpx.Client) -> None:
            with client.stream("GET", self.url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)

        try:
            if self._client is not None:
                stream(self._client)
            else:
                with httpx.Client(timeout=120.0, follow_redirects=True) as client:
                    stream(client)
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise BuildError(f"Failed to download Hugo {self.version}: {e}") from e

        os.replace(partial, self.tarball_path)

    def _extract(self) -> Path:
        target = self.binary_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(self.tarball_path, "r:gz") as tar:
            member = next(m for m in tar.getmembers() if Path(m.name).name == "hugo" and m.isfile())
            source = tar.extractfile(member)
            target.write_bytes(source.read())
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return target

    def ensure(self) -> Path:
        """Return the path of a usable binary, downloading it when needed."""
        for attempt in range(1, self.download_attempts + 1):
            if self._is_valid(self.tarball_path):
                if attempt == 1:
                    console.print(f"[dim]Using cached Hugo {self.version}[/dim]")
                return self._extract()

            self.tarball_path.unlink(missing_ok=True)
            self._download()

        if self._is_valid(self.tarball_path):
            return self._extract()
        raise BuildError(f"Downloaded Hugo {self.version} tarball is corrupt")
