"""Local disk storage backend serving files under ``/assets``."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from ..exceptions import StorageCommitError
from .keys import is_valid_key
from .storage_backend import StorageBackend, StoredObject

ASSETS_DIR_MODE = 0o755
ASSET_FILE_MODE = 0o644
PARTIAL_SUFFIX = ".partial"


@dataclass(slots=True)
class LocalDiskStorage(StorageBackend):
    """Flat assets directory with one file per key.

    Writes land in a hidden ``.<key>.*.partial`` file inside the same
    directory and are renamed into place once fully flushed, so a crash
    mid-copy never leaves a truncated file at a resolvable path.
    """

    root: Path
    host: str = "localhost"
    port: str = "8091"
    chunk_size_bytes: int = 1 << 20
    kind: str = field(default="local", init=False)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def ensure_root(self) -> Path:
        self.root.mkdir(mode=ASSETS_DIR_MODE, parents=True, exist_ok=True)
        return self.root

    def path_for(self, key: str) -> Path:
        if not is_valid_key(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.root / key

    def put(self, key: str, source: BinaryIO, content_type: str) -> StoredObject:
        target = self.path_for(key)
        try:
            directory = self.ensure_root()
            partial = tempfile.NamedTemporaryFile(
                mode="wb",
                dir=directory,
                prefix=f".{key}.",
                suffix=PARTIAL_SUFFIX,
                delete=False,
            )
        except OSError as exc:
            self.log.error(
                "storage.local.put_failed",
                extra={"key": key, "stage": "open"},
                exc_info=exc,
            )
            raise StorageCommitError(
                "unable to open destination", operation="local.put", key=key
            ) from exc

        partial_path = Path(partial.name)
        try:
            with partial:
                shutil.copyfileobj(source, partial, self.chunk_size_bytes)
                partial.flush()
                os.fsync(partial.fileno())
                size = partial.tell()
            os.chmod(partial_path, ASSET_FILE_MODE)
            os.replace(partial_path, target)
        except OSError as exc:
            partial_path.unlink(missing_ok=True)
            self.log.error(
                "storage.local.put_failed",
                extra={"key": key, "stage": "copy"},
                exc_info=exc,
            )
            raise StorageCommitError(
                "unable to write asset", operation="local.put", key=key
            ) from exc
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        self.log.info(
            "storage.local.stored",
            extra={"key": key, "size_bytes": size, "path": str(target)},
        )
        return StoredObject(key=key, size_bytes=size, content_type=content_type)

    def url_for(self, key: str) -> str:
        return f"http://{self.host}:{self.port}/assets/{key}"

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)
        self.log.info("storage.local.deleted", extra={"key": key})
