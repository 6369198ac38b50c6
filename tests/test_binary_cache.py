"""Tests for build/binary.py: fetch-if-absent Hugo cache over a mocked transport."""

from __future__ import annotations

import hashlib
import io
import os
import tarfile

import httpx
import pytest

from sitepub.build import HugoBinaryCache
from sitepub.errors import BuildError

URL_TEMPLATE = "https://example.com/hugo_{version}_Linux-64bit.tar.gz"


def make_tarball(name: str = "hugo", body: bytes = b"#!/bin/sh\necho hugo v0.98.0\n") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        info = tarfile.TarInfo(name)
        info.size = len(body)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(body))
    return buffer.getvalue()


class Server:
    """Counts requests and serves a fixed response."""

    def __init__(self, content: bytes, status: int = 200) -> None:
        self.content = content
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        return httpx.Response(self.status, content=self.content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class TestHugoBinaryCache:
    def test_downloads_once(self, tmp_path):
        server = Server(make_tarball())
        cache = HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, client=server.client())

        binary = cache.ensure()
        assert binary == tmp_path / "hugo_0.98.0" / "hugo"
        assert os.access(binary, os.X_OK)
        assert server.requests == ["https://example.com/hugo_0.98.0_Linux-64bit.tar.gz"]

        cache.ensure()
        assert len(server.requests) == 1

    def test_versions_cached_separately(self, tmp_path):
        server = Server(make_tarball())
        HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, client=server.client()).ensure()
        HugoBinaryCache(tmp_path, "0.99.1", URL_TEMPLATE, client=server.client()).ensure()
        assert len(server.requests) == 2

    def test_corrupt_cache_is_replaced(self, tmp_path):
        server = Server(make_tarball())
        cache = HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, client=server.client())
        cache.tarball_path.write_bytes(b"truncated")

        assert cache.ensure().is_file()
        assert len(server.requests) == 1

    def test_checksum_verified(self, tmp_path):
        tarball = make_tarball()
        server = Server(tarball)
        cache = HugoBinaryCache(
            tmp_path,
            "0.98.0",
            URL_TEMPLATE,
            sha256=hashlib.sha256(tarball).hexdigest(),
            client=server.client(),
        )
        assert cache.ensure().is_file()

    def test_checksum_mismatch_fails(self, tmp_path):
        server = Server(make_tarball())
        cache = HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, sha256="0" * 64, client=server.client())
        with pytest.raises(BuildError, match="corrupt"):
            cache.ensure()
        assert len(server.requests) == 2

    def test_tarball_without_binary(self, tmp_path):
        server = Server(make_tarball(name="README.md"))
        cache = HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, client=server.client())
        with pytest.raises(BuildError):
            cache.ensure()

    def test_download_failure(self, tmp_path):
        server = Server(b"not found", status=404)
        cache = HugoBinaryCache(tmp_path, "0.98.0", URL_TEMPLATE, client=server.client())
        with pytest.raises(BuildError, match="Failed to download"):
            cache.ensure()
        assert not cache.tarball_path.exists()
