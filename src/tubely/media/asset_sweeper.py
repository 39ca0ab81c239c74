"""Reconciliation sweep for the local assets directory."""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..storage.keys import is_valid_key
from ..storage.local_disk import PARTIAL_SUFFIX, LocalDiskStorage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepSummary:
    partial_removed: int
    orphans_removed: int
    dry_run: bool


def sweep_local_assets(
    storage: LocalDiskStorage,
    referenced_urls: Collection[str],
    *,
    grace: timedelta,
    reference_time: datetime | None = None,
    dry_run: bool = False,
) -> SweepSummary:
    """Remove stale partial writes and assets no video points to.

    Files younger than ``grace`` are skipped so that in-flight uploads whose
    record update has not landed yet are never touched.
    """
    now = reference_time or datetime.now(tz=timezone.utc)
    cutoff = (now - grace).timestamp()
    partial_removed = 0
    orphans_removed = 0

    if not storage.root.exists():
        return SweepSummary(partial_removed=0, orphans_removed=0, dry_run=dry_run)

    for path in sorted(storage.root.iterdir()):
        if not path.is_file() or path.stat().st_mtime > cutoff:
            continue
        name = path.name
        if name.startswith(".") and name.endswith(PARTIAL_SUFFIX):
            partial_removed += 1
            event = "media.sweep.partial"
        elif is_valid_key(name) and storage.url_for(name) not in referenced_urls:
            orphans_removed += 1
            event = "media.sweep.orphan"
        else:
            continue
        if not dry_run:
            path.unlink(missing_ok=True)
        logger.info(event, extra={"path": str(path), "dry_run": dry_run})

    return SweepSummary(
        partial_removed=partial_removed,
        orphans_removed=orphans_removed,
        dry_run=dry_run,
    )
