"""Aspect ratio probing through ``ffprobe``.

Only the JSON emitted by ``ffprobe -show_streams`` is interpreted here; the
process call itself goes through an injectable runner so tests never need a
real binary.
"""

from __future__ import annotations

import json
import logging
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from ..exceptions import AppError

logger = logging.getLogger(__name__)

RATIO_TOLERANCE = 0.01
LANDSCAPE = 16 / 9
PORTRAIT = 9 / 16

Runner = Callable[..., subprocess.CompletedProcess]


class AspectRatio(StrEnum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    OTHER = "other"


class ProbeError(AppError):
    """Raised when ffprobe cannot run or its output cannot be interpreted."""


def _parse_ratio(value: Any) -> float | None:
    if not isinstance(value, str) or ":" not in value:
        return None
    width, _, height = value.partition(":")
    try:
        w, h = float(width), float(height)
    except ValueError:
        return None
    if w <= 0 or h <= 0:
        return None
    return w / h


def _rotation(stream: Mapping[str, Any]) -> int:
    tags = stream.get("tags") or {}
    raw = tags.get("rotate") if isinstance(tags, Mapping) else None
    if raw is None:
        for entry in stream.get("side_data_list") or []:
            if isinstance(entry, Mapping) and "rotation" in entry:
                raw = entry["rotation"]
                break
    if raw is None:
        return 0
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return 0


def _select_stream(streams: Sequence[Any]) -> Mapping[str, Any]:
    candidates = [s for s in streams if isinstance(s, Mapping)]
    if not candidates:
        raise ProbeError("ffprobe reported no streams", operation="probe.parse")
    for stream in candidates:
        if stream.get("codec_type") == "video":
            return stream
    if any("codec_type" in stream for stream in candidates):
        raise ProbeError("ffprobe reported no video stream", operation="probe.parse")
    return candidates[0]


def classify_ratio(ratio: float) -> AspectRatio:
    if abs(ratio - LANDSCAPE) / LANDSCAPE <= RATIO_TOLERANCE:
        return AspectRatio.LANDSCAPE
    if abs(ratio - PORTRAIT) / PORTRAIT <= RATIO_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def parse_aspect_ratio(payload: Mapping[str, Any]) -> AspectRatio:
    """Derive the canonical aspect ratio from ``ffprobe -show_streams`` JSON.

    Precedence: the stream's ``display_aspect_ratio`` when it is a valid
    ``W:H``, otherwise ``width / height``. A quarter-turn rotation (read from
    ``tags.rotate`` first, then ``side_data_list[].rotation``) inverts the
    ratio in both cases.
    """
    streams = payload.get("streams")
    if not isinstance(streams, Sequence) or isinstance(streams, (str, bytes)):
        raise ProbeError("ffprobe output has no streams list", operation="probe.parse")
    stream = _select_stream(streams)

    ratio = _parse_ratio(stream.get("display_aspect_ratio"))
    if ratio is None:
        width, height = stream.get("width"), stream.get("height")
        if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
            raise ProbeError("stream has no usable dimensions", operation="probe.parse")
        ratio = width / height

    if abs(_rotation(stream)) % 180 == 90:
        ratio = 1 / ratio
    return classify_ratio(ratio)


@dataclass(slots=True)
class FFProbe:
    """Narrow capability mapping a local file path to its aspect ratio."""

    binary: str = "ffprobe"
    timeout_seconds: float = 30.0
    runner: Runner = field(default=subprocess.run)

    def command(self, path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

    def probe_aspect_ratio(self, path: Path) -> AspectRatio:
        try:
            completed = self.runner(
                self.command(path),
                capture_output=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ProbeError(f"{self.binary} not found", operation="probe.run") from exc
        except subprocess.TimeoutExpired as exc:
            raise ProbeError("ffprobe timed out", operation="probe.run") from exc
        except OSError as exc:
            raise ProbeError("ffprobe could not be started", operation="probe.run") from exc

        if completed.returncode != 0:
            stderr = completed.stderr or b""
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise ProbeError(
                f"ffprobe exited with {completed.returncode}: {stderr.strip()[:200]}",
                operation="probe.run",
            )

        try:
            payload = json.loads(completed.stdout)
        except (TypeError, ValueError) as exc:
            raise ProbeError("ffprobe output is not JSON", operation="probe.parse") from exc
        if not isinstance(payload, Mapping):
            raise ProbeError("ffprobe output is not an object", operation="probe.parse")

        result = parse_aspect_ratio(payload)
        logger.info(
            "media.probe.aspect_ratio",
            extra={"path": str(path), "aspect_ratio": result.value},
        )
        return result


__all__ = ["AspectRatio", "FFProbe", "ProbeError", "classify_ratio", "parse_aspect_ratio"]
