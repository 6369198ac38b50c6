"""Tests for build/hugo.py: the builder driven against a stand-in hugo script."""

from __future__ import annotations

import asyncio
import stat
from pathlib import Path

import pytest

from sitepub.build import SiteBuilder
from sitepub.config import SiteConfig

# Writes its arguments and the HUGO_* environment, then builds an index page
FAKE_HUGO = """#!/bin/sh
env | grep '^HUGO_' | sort > "$FAKE_HUGO_ENV"
echo "$@" > "$FAKE_HUGO_ARGS"
while [ $# -gt 0 ]; do
  if [ "$1" = "--destination" ]; then dest="$2"; fi
  shift
done
mkdir -p "$dest"
echo '<html></html>' > "$dest/index.html"
echo "Total in 12 ms"
"""


def write_script(path: Path, body: str) -> Path:
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.fixture
def record_files(tmp_path, monkeypatch):
    env_file, args_file = tmp_path / "env.txt", tmp_path / "args.txt"
    monkeypatch.setenv("FAKE_HUGO_ENV", str(env_file))
    monkeypatch.setenv("FAKE_HUGO_ARGS", str(args_file))
    return env_file, args_file


@pytest.fixture
def source_root(tmp_path) -> Path:
    root = tmp_path / "site"
    root.mkdir()
    (root / "config.yml").write_text("title: test\n")
    return root


def make_builder(tmp_path, body: str = FAKE_HUGO, site: SiteConfig = None, timeout: float = 10.0) -> SiteBuilder:
    return SiteBuilder(
        build_root=tmp_path / "build",
        site=site or SiteConfig(base_url="https://news.example.com/", env="production"),
        binary_path=write_script(tmp_path / "hugo", body),
        timeout=timeout,
    )


class TestSiteBuilder:
    @pytest.mark.asyncio
    async def test_successful_build(self, tmp_path, source_root, record_files):
        builder = make_builder(tmp_path)
        artifact = await builder.build(source_root, is_draft=False, build_id="run1")

        assert artifact.success
        assert artifact.artifact_location == str(tmp_path / "build" / "staticPages")
        assert (Path(artifact.artifact_location) / "index.html").is_file()
        assert "Total in 12 ms" in Path(artifact.log_ref).read_text()
        assert "--buildDrafts" not in record_files[1].read_text()

    @pytest.mark.asyncio
    async def test_draft_flag(self, tmp_path, source_root, record_files):
        await make_builder(tmp_path).build(source_root, is_draft=True, build_id="run1")
        args = record_files[1].read_text()
        assert "--buildDrafts" in args
        assert "--cleanDestinationDir" in args

    @pytest.mark.asyncio
    async def test_environment(self, tmp_path, source_root, record_files):
        site = SiteConfig(
            base_url="https://news.example.com/",
            env="production",
            disqus_shortname="news",
            google_analytics="UA-1",
        )
        await make_builder(tmp_path, site=site).build(source_root, False, "run1")
        env = record_files[0].read_text().splitlines()
        assert "HUGO_BASEURL=https://news.example.com/" in env
        assert "HUGO_PARAMS_ENV=production" in env
        assert "HUGO_PARAMS_COMMENTS=true" in env
        assert "HUGO_DISQUSSHORTNAME=news" in env
        assert "HUGO_GOOGLEANALYTICS=UA-1" in env

    @pytest.mark.asyncio
    async def test_comments_disabled_without_shortname(self, tmp_path, source_root, record_files):
        await make_builder(tmp_path).build(source_root, False, "run1")
        assert "HUGO_PARAMS_COMMENTS" not in record_files[0].read_text()

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path, source_root):
        builder = make_builder(tmp_path, "#!/bin/sh\necho 'Error: theme not found'\nexit 255\n")
        artifact = await builder.build(source_root, False, "run1")
        assert not artifact.success
        assert "255" in artifact.error
        assert "theme not found" in Path(artifact.log_ref).read_text()

    @pytest.mark.asyncio
    async def test_missing_index_page(self, tmp_path, source_root):
        artifact = await make_builder(tmp_path, "#!/bin/sh\nexit 0\n").build(source_root, False, "run1")
        assert not artifact.success
        assert "index.html" in artifact.error

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path, source_root):
        builder = make_builder(tmp_path, "#!/bin/sh\nexec sleep 30\n", timeout=0.5)
        artifact = await builder.build(source_root, False, "run1")
        assert not artifact.success
        assert "timed out" in artifact.error

    @pytest.mark.asyncio
    async def test_timeout_after_process_exit(self, tmp_path, source_root, monkeypatch):
        class ExitedProcess:
            returncode = 0

            async def communicate(self):
                await asyncio.sleep(30)

            def kill(self):
                raise ProcessLookupError()

            async def wait(self):
                return 0

        async def fake_exec(*args, **kwargs):
            return ExitedProcess()

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        artifact = await make_builder(tmp_path, timeout=0.2).build(source_root, False, "run1")
        assert not artifact.success
        assert "timed out" in artifact.error

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path, source_root):
        builder = SiteBuilder(tmp_path / "build", SiteConfig(), binary_path=tmp_path / "nope")
        artifact = await builder.build(source_root, False, "run1")
        assert not artifact.success
        assert "not found" in artifact.error

    def test_requires_binary_source(self, tmp_path):
        with pytest.raises(ValueError):
            SiteBuilder(tmp_path, SiteConfig())
