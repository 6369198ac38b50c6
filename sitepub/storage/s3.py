"""S3 backed content store."""

import mimetypes
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from ..errors import KeyNotFoundError, StorageError
from .base import ContentStore

console = Console()


class S3ContentStore(ContentStore):
    """Store objects in an S3 compatible bucket."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        cache_dir: Optional[Path] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ) -> None:
        """
        Initialize S3 store.

        Args:
            bucket: Bucket name
            prefix: Key prefix for all objects
            cache_dir: Local directory used to materialize trees for the build tool
            region: AWS region (boto3 default when unset)
            endpoint_url: Custom endpoint for MinIO/compatible storage
            client: Preconfigured boto3 S3 client
        """
        if client is None:
            kwargs = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **kwargs)

        self._s3 = client
        self.bucket = bucket
        self.prefix = prefix.rstrip("/") + "/" if prefix else ""
        self.cache_dir = Path(cache_dir or Path.home() / ".cache" / "sitepub" / "s3").expanduser()

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key.lstrip('/')}"

    def get(self, key: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=self.bucket, Key=self._full_key(key))
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise KeyNotFoundError(key) from e
            raise StorageError(f"Failed to read s3://{self.bucket}/{self._full_key(key)}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read s3://{self.bucket}/{self._full_key(key)}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=self._full_key(key),
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to write s3://{self.bucket}/{self._full_key(key)}: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=self._full_key(key))
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404", "NotFound"):
                return False
            raise StorageError(f"Failed to stat s3://{self.bucket}/{self._full_key(key)}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to stat s3://{self.bucket}/{self._full_key(key)}: {e}") from e

    def list_keys(self, prefix: str) -> List[str]:
        full_prefix = self._full_key(prefix)
        keys = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=full_prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"][len(self.prefix):])
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list s3://{self.bucket}/{full_prefix}: {e}") from e
        return sorted(keys)

    def materialize(self, prefix: str) -> Path:
        """Download the prefix tree into the local cache directory.

        The tree is staged in a sibling directory and swapped in whole, so the
        cache mirrors the bucket and objects deleted there disappear locally.
        """
        target = self.cache_dir / self.bucket / prefix.strip("/")
        keys = self.list_keys(prefix)
        if not keys:
            raise KeyNotFoundError(prefix)

        base = prefix.strip("/") + "/"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(dir=target.parent, prefix=f".{target.name}."))
            try:
                for key in keys:
                    relative = key[len(base):] if key.startswith(base) else key
                    path = staging / relative
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_bytes(self.get(key))
                if target.exists():
                    shutil.rmtree(target)
                staging.rename(target)
            finally:
                if staging.exists():
                    shutil.rmtree(staging, ignore_errors=True)
        except OSError as e:
            raise StorageError(f"Failed to materialize s3://{self.bucket}/{self._full_key(prefix)}: {e}") from e

        console.print(f"[dim]Materialized {len(keys)} objects from s3://{self.bucket}/{self._full_key(prefix)}[/dim]")
        return target

    def put_tree(self, local_dir: Path, prefix: str) -> int:
        count = 0
        for path in sorted(Path(local_dir).rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(local_dir).as_posix()
            self.put(f"{prefix.rstrip('/')}/{relative}", path.read_bytes())
            count += 1
        return count
