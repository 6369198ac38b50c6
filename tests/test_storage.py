"""Tests for storage/: local filesystem and mocked S3 stores."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from sitepub.errors import KeyNotFoundError, StorageError
from sitepub.storage import LocalContentStore, S3ContentStore


class TestLocalContentStore:
    def test_put_get(self, tmp_path):
        store = LocalContentStore(tmp_path)
        store.put("a/b.txt", b"hello")
        assert store.get("a/b.txt") == b"hello"
        assert store.exists("a/b.txt")

    def test_overwrite(self, tmp_path):
        store = LocalContentStore(tmp_path)
        store.put_text("k.md", "one")
        store.put_text("k.md", "two")
        assert store.get("k.md") == b"two"
        # No temporary files left behind
        assert [p.name for p in tmp_path.iterdir()] == ["k.md"]

    def test_missing_key(self, tmp_path):
        with pytest.raises(KeyNotFoundError):
            LocalContentStore(tmp_path).get("missing")

    def test_key_cannot_escape_root(self, tmp_path):
        store = LocalContentStore(tmp_path / "root")
        with pytest.raises(StorageError):
            store.put("../outside", b"x")

    def test_list_keys(self, store):
        store.put_text("hugo/content/posts/x.md", "x")
        keys = store.list_keys("hugo")
        assert "hugo/config.yml" in keys
        assert "hugo/content/posts/x.md" in keys
        assert store.list_keys("nothing") == []

    def test_materialize(self, store):
        root = store.materialize("hugo")
        assert (root / "config.yml").is_file()

    def test_materialize_missing(self, tmp_path):
        with pytest.raises(KeyNotFoundError):
            LocalContentStore(tmp_path).materialize("hugo")

    def test_put_tree(self, tmp_path):
        site = tmp_path / "site"
        (site / "posts").mkdir(parents=True)
        (site / "index.html").write_text("<html/>")
        (site / "posts" / "a.html").write_text("a")
        store = LocalContentStore(tmp_path / "bucket")
        assert store.put_tree(site, "artifacts/staticPages") == 2
        assert store.get("artifacts/staticPages/posts/a.html") == b"a"


@pytest.fixture
def s3_objects() -> dict:
    return {}


@pytest.fixture
def s3_store(tmp_path, s3_objects) -> S3ContentStore:
    """S3ContentStore with an in-memory mocked client."""
    client = MagicMock()

    def not_found(operation):
        return ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, operation)

    def put_object(Bucket, Key, Body, ContentType):
        s3_objects[Key] = Body

    def get_object(Bucket, Key):
        if Key not in s3_objects:
            raise not_found("GetObject")
        return {"Body": io.BytesIO(s3_objects[Key])}

    def head_object(Bucket, Key):
        if Key not in s3_objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def paginate(Bucket, Prefix):
        yield {"Contents": [{"Key": k} for k in sorted(s3_objects) if k.startswith(Prefix)]}

    client.put_object.side_effect = put_object
    client.get_object.side_effect = get_object
    client.head_object.side_effect = head_object
    client.get_paginator.return_value.paginate.side_effect = paginate

    return S3ContentStore("site-bucket", prefix="prod", cache_dir=tmp_path / "cache", client=client)


class TestS3ContentStore:
    def test_prefix_applied(self, s3_store, s3_objects):
        s3_store.put_text("hugo/config.yml", "title: x")
        assert "prod/hugo/config.yml" in s3_objects
        assert s3_store.get("hugo/config.yml") == b"title: x"

    def test_missing_key(self, s3_store):
        with pytest.raises(KeyNotFoundError):
            s3_store.get("nope")
        assert not s3_store.exists("nope")

    def test_list_keys_strips_prefix(self, s3_store):
        s3_store.put("hugo/a.md", b"a")
        s3_store.put("other/b.md", b"b")
        assert s3_store.list_keys("hugo") == ["hugo/a.md"]

    def test_materialize_downloads_tree(self, s3_store, tmp_path):
        s3_store.put("hugo/config.yml", b"title: x")
        s3_store.put("hugo/content/posts/a.md", b"a")
        root = s3_store.materialize("hugo")
        assert str(root).startswith(str(tmp_path / "cache"))
        assert (root / "config.yml").read_bytes() == b"title: x"
        assert (root / "content" / "posts" / "a.md").read_bytes() == b"a"

    def test_materialize_drops_deleted_objects(self, s3_store, s3_objects):
        s3_store.put("hugo/config.yml", b"title: x")
        s3_store.put("hugo/content/posts/old.en.md", b"old")
        s3_store.materialize("hugo")

        del s3_objects["prod/hugo/content/posts/old.en.md"]
        root = s3_store.materialize("hugo")

        assert (root / "config.yml").is_file()
        assert not (root / "content" / "posts" / "old.en.md").exists()
        assert [p.name for p in root.parent.iterdir()] == ["hugo"]

    def test_materialize_local_write_error(self, s3_store, tmp_path):
        s3_store.put("hugo/config.yml", b"title: x")
        (tmp_path / "cache").write_text("not a directory")
        with pytest.raises(StorageError):
            s3_store.materialize("hugo")

    def test_materialize_empty_prefix(self, s3_store):
        with pytest.raises(KeyNotFoundError):
            s3_store.materialize("hugo")

    def test_put_tree(self, s3_store, s3_objects, tmp_path):
        site = tmp_path / "site"
        site.mkdir()
        (site / "index.html").write_text("<html/>")
        assert s3_store.put_tree(site, "artifacts/staticPages") == 1
        assert "prod/artifacts/staticPages/index.html" in s3_objects

    def test_client_error_maps_to_storage_error(self, s3_store):
        s3_store._s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        with pytest.raises(StorageError):
            s3_store.put("x", b"x")
