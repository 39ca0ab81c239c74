"""Storage key generation.

Keys are the only name a stored object ever gets: 24 bytes from the OS CSPRNG
encoded with the URL-safe base64 alphabet (32 characters, no padding) plus an
extension derived from the media type. Nothing from the client filename ends
up in the key.
"""

from __future__ import annotations

import re
import secrets

KEY_ENTROPY_BYTES = 24
KEY_ID_LENGTH = 32
FALLBACK_EXTENSION = ".bin"

_SUBTYPE_RE = re.compile(r"^[a-z0-9][a-z0-9+.-]*$")
_KEY_RE = re.compile(r"^[A-Za-z0-9_-]{%d}\.[a-z0-9][a-z0-9+.-]*$" % KEY_ID_LENGTH)


def extension_for(media_type: str | None) -> str:
    """Return ``.<subtype>`` for a MIME type or ``.bin`` when it is malformed."""
    if not media_type:
        return FALLBACK_EXTENSION
    essence = media_type.split(";", 1)[0].strip().lower()
    parts = essence.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return FALLBACK_EXTENSION
    subtype = parts[1]
    if ".." in subtype or not _SUBTYPE_RE.match(subtype):
        return FALLBACK_EXTENSION
    return f".{subtype}"


def generate_key(media_type: str | None) -> str:
    """Return a fresh, unguessable storage key for ``media_type``.

    ``secrets`` failures propagate; a key is never derived from a weaker source.
    """
    identifier = secrets.token_urlsafe(KEY_ENTROPY_BYTES)
    return f"{identifier}{extension_for(media_type)}"


def is_valid_key(key: str) -> bool:
    """Check that ``key`` has the shape produced by :func:`generate_key`."""
    return bool(_KEY_RE.match(key)) and ".." not in key


__all__ = [
    "FALLBACK_EXTENSION",
    "KEY_ID_LENGTH",
    "extension_for",
    "generate_key",
    "is_valid_key",
]
