"""Abstractions over media storage backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO


@dataclass(slots=True, frozen=True)
class StoredObject:
    """Object committed by a backend; owned by the backend afterwards."""

    key: str
    size_bytes: int
    content_type: str


class StorageBackend:
    """Durable storage for uploaded media addressed by storage key.

    Implementations guarantee that ``put`` is atomic from the caller's point
    of view: either the object is fully retrievable at ``url_for(key)`` or a
    :class:`~src.tubely.exceptions.StorageCommitError` is raised and nothing
    resolvable is left behind.
    """

    kind: str = "abstract"

    def put(self, key: str, source: BinaryIO, content_type: str) -> StoredObject:
        """Stream ``source`` into storage under ``key``."""

        raise NotImplementedError

    def url_for(self, key: str) -> str:
        """Return the retrieval URL for ``key`` (pure, no I/O)."""

        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Remove the object stored under ``key`` if it exists."""

        raise NotImplementedError
