"""Content type sniffing from leading bytes."""

from __future__ import annotations

import magic

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
}


def normalize_content_type(value: str | None) -> str | None:
    """Strip parameters, lower-case and resolve common aliases."""
    if not value:
        return None
    essence = value.split(";", 1)[0].strip().lower()
    if not essence:
        return None
    return _ALIASES.get(essence, essence)


def sniff_content_type(head: bytes) -> str:
    """Detect the MIME type of ``head`` using libmagic."""
    if not head:
        return DEFAULT_CONTENT_TYPE
    detected = magic.from_buffer(head, mime=True)
    return normalize_content_type(detected) or DEFAULT_CONTENT_TYPE


__all__ = ["DEFAULT_CONTENT_TYPE", "normalize_content_type", "sniff_content_type"]
