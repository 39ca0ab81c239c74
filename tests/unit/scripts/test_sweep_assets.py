import importlib.util
import os
import sys
import time
from dataclasses import replace
from pathlib import Path

import pytest

from src.tubely.config import load_config
from src.tubely.storage.keys import generate_key
from src.tubely.videos.videos_repository import VideoRepository

PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "sweep_assets.py"
SPEC = importlib.util.spec_from_file_location("sweep_assets_module", MODULE_PATH)
sweep_assets = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules["sweep_assets_module"] = sweep_assets
SPEC.loader.exec_module(sweep_assets)


def _age(path: Path, seconds: int) -> None:
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


@pytest.fixture
def local_env(tmp_path: Path, monkeypatch) -> Path:
    assets = tmp_path / "assets"
    assets.mkdir()
    monkeypatch.setenv("ASSETS_ROOT", str(assets))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'sweep.db'}")
    monkeypatch.setenv("JWT_SECRET", "sweep-secret")
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "local")
    monkeypatch.delenv("PLATFORM_HOST", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    return assets


def test_sweep_removes_unreferenced_assets(local_env: Path) -> None:
    config = load_config()
    repo = VideoRepository(config.session_factory)
    referenced_key = generate_key("image/png")
    orphan_key = generate_key("image/png")
    video = repo.create_video(user_id="user-1", title="Boots")
    repo.update_video(
        replace(video, thumbnail_url=f"http://localhost:8091/assets/{referenced_key}")
    )
    for key in (referenced_key, orphan_key):
        (local_env / key).write_bytes(b"png")
        _age(local_env / key, 7200)

    summary = sweep_assets.perform_sweep(dry_run=False, grace_minutes=60)

    assert summary.orphans_removed == 1
    assert (local_env / referenced_key).exists()
    assert not (local_env / orphan_key).exists()


def test_main_dry_run_reports_counts(local_env: Path, capsys) -> None:
    orphan = local_env / generate_key("video/mp4")
    orphan.write_bytes(b"mp4")
    _age(orphan, 7200)

    exit_code = sweep_assets.main(["--dry-run"])

    assert exit_code == 0
    assert "orphans=1" in capsys.readouterr().out
    assert orphan.exists()


def test_main_rejects_s3_backend(local_env: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("S3_BUCKET", "tubely-media")
    monkeypatch.setenv("S3_REGION", "us-east-1")

    exit_code = sweep_assets.main([])

    assert exit_code == 2
    assert "local storage backend" in capsys.readouterr().err
