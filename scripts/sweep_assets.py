"""Cron entry point for reconciling the local assets directory."""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from src.tubely.config import load_config
from src.tubely.media.asset_sweeper import SweepSummary, sweep_local_assets
from src.tubely.storage import LocalDiskStorage, build_backend
from src.tubely.videos.videos_repository import VideoRepository


def perform_sweep(*, dry_run: bool, grace_minutes: int) -> SweepSummary:
    """Execute sweep logic and return summary counters."""
    config = load_config()
    backend = build_backend(config)
    if not isinstance(backend, LocalDiskStorage):
        raise RuntimeError("asset sweep only supports the local storage backend")
    repo = VideoRepository(config.session_factory)
    return sweep_local_assets(
        backend,
        repo.list_asset_urls(),
        grace=timedelta(minutes=grace_minutes),
        dry_run=dry_run,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Remove orphaned and partial local assets.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without deleting files.")
    parser.add_argument(
        "--grace-minutes",
        type=int,
        default=60,
        help="Skip files modified more recently than this many minutes.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    try:
        summary = perform_sweep(dry_run=args.dry_run, grace_minutes=args.grace_minutes)
    except Exception as exc:
        print(f"sweep failed: {exc}", file=sys.stderr)
        return 2

    prefix = "sweep dry-run" if summary.dry_run else "sweep done"
    print(
        f"{prefix}, partial={summary.partial_removed}, orphans={summary.orphans_removed}",
        file=sys.stdout,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
