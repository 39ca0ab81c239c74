"""S3 object store backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StorageCommitError
from .storage_backend import StorageBackend, StoredObject


def build_s3_client(region: str, endpoint_url: str | None = None) -> Any:
    """Create a boto3 S3 client using the default credential chain."""
    return boto3.client("s3", region_name=region, endpoint_url=endpoint_url)


def _remaining_size(source: BinaryIO) -> int:
    position = source.tell()
    end = source.seek(0, os.SEEK_END)
    source.seek(position)
    return end - position


@dataclass(slots=True)
class S3ObjectStorage(StorageBackend):
    """Single-request ``PutObject`` uploads to one bucket.

    Upload size is bounded by the ingest limits, so multipart uploads are not
    needed; a single PUT is atomic on the S3 side.
    """

    client: Any
    bucket: str
    region: str
    kind: str = field(default="s3", init=False)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def put(self, key: str, source: BinaryIO, content_type: str) -> StoredObject:
        size = _remaining_size(source)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=source,
                ContentType=content_type,
                ContentLength=size,
            )
        except (BotoCoreError, ClientError) as exc:
            self.log.error(
                "storage.s3.put_failed",
                extra={"bucket": self.bucket, "key": key},
                exc_info=exc,
            )
            raise StorageCommitError(
                "unable to upload object", operation="s3.put_object", key=key
            ) from exc

        self.log.info(
            "storage.s3.stored",
            extra={"bucket": self.bucket, "key": key, "size_bytes": size},
        )
        return StoredObject(key=key, size_bytes=size, content_type=content_type)

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageCommitError(
                "unable to delete object", operation="s3.delete_object", key=key
            ) from exc
        self.log.info("storage.s3.deleted", extra={"bucket": self.bucket, "key": key})
