"""Static site builder driving the Hugo CLI."""

import asyncio
import os
import time
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console

from ..config import SiteConfig
from ..errors import BuildError
from ..models import BuildArtifact
from .binary import HugoBinaryCache

console = Console()


class SiteBuilder:
    """Build the whole site from a content tree into a fixed artifact directory."""

    def __init__(
        self,
        build_root: Path,
        site: SiteConfig,
        binary_cache: Optional[HugoBinaryCache] = None,
        binary_path: Optional[Path] = None,
        artifact_name: str = "staticPages",
        timeout: float = 600.0,
    ) -> None:
        """
        Initialize site builder.

        Args:
            build_root: Directory receiving the artifact and build logs
            site: Site parameters passed to Hugo through the environment
            binary_cache: Cache providing the Hugo binary
            binary_path: Explicit Hugo binary; bypasses the cache
            artifact_name: Fixed name of the artifact directory
            timeout: Hard wall-clock limit for one build in seconds
        """
        if binary_cache is None and binary_path is None:
            raise ValueError("SiteBuilder needs a binary cache or a binary path")
        self.build_root = Path(build_root)
        self.site = site
        self.binary_cache = binary_cache
        self.binary_path = Path(binary_path) if binary_path else None
        self.artifact_name = artifact_name
        self.timeout = timeout

    @property
    def artifact_dir(self) -> Path:
        return self.build_root / self.artifact_name

    def environment(self) -> Dict[str, str]:
        """Environment parameters for the build tool."""
        env = dict(os.environ)
        env["HUGO_BASEURL"] = self.site.base_url
        env["HUGO_PARAMS_ENV"] = self.site.env
        if self.site.comments_enabled:
            env["HUGO_PARAMS_COMMENTS"] = "true"
            env["HUGO_DISQUSSHORTNAME"] = self.site.disqus_shortname
        if self.site.google_analytics:
            env["HUGO_GOOGLEANALYTICS"] = self.site.google_analytics
        return env

    def command(self, binary: Path, source_root: Path, is_draft: bool) -> List[str]:
        cmd = [
            str(binary),
            "--source", str(source_root),
            "--destination", str(self.artifact_dir),
            "--cleanDestinationDir",
        ]
        if is_draft:
            cmd.append("--buildDrafts")
        return cmd

    async def _resolve_binary(self) -> Path:
        if self.binary_path is not None:
            if not self.binary_path.is_file():
                raise BuildError(f"Hugo binary not found: {self.binary_path}")
            return self.binary_path
        return await asyncio.to_thread(self.binary_cache.ensure)

    async def build(self, source_root: Path, is_draft: bool, build_id: str) -> BuildArtifact:
        """
        Run the build tool against the full content tree.

        Failures (tool unavailable, non-zero exit, timeout, missing index page)
        are reported in the returned artifact and never raised.
        """
        start = time.monotonic()
        log_dir = self.build_root / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"{build_id}.log"

        def result(success: bool, error: Optional[str] = None) -> BuildArtifact:
            return BuildArtifact(
                success=success,
                artifact_location=str(self.artifact_dir),
                log_ref=str(log_path),
                build_id=build_id,
                duration=time.monotonic() - start,
                error=error,
            )

        try:
            binary = await self._resolve_binary()
        except BuildError as e:
            log_path.write_text(f"{e.reason}\n", encoding="utf-8")
            return result(False, e.reason)

        cmd = self.command(binary, Path(source_root), is_draft)
        console.print(f"[dim]$ {' '.join(cmd)}[/dim]")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=self.environment(),
                cwd=str(source_root),
            )
        except OSError as e:
            log_path.write_text(f"Failed to start build tool: {e}\n", encoding="utf-8")
            return result(False, f"Failed to start build tool: {e}")

        try:
            output, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            log_path.write_text(f"Build timed out after {self.timeout:.0f}s\n", encoding="utf-8")
            return result(False, f"Build timed out after {self.timeout:.0f}s")
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise

        log_path.write_bytes(output or b"")

        if process.returncode != 0:
            return result(False, f"Build tool exited with code {process.returncode}")

        if not (self.artifact_dir / "index.html").is_file():
            return result(False, "Build produced no index.html")

        return result(True)
