import importlib.util
import sys
from pathlib import Path

import pytest

from src.tubely.auth.auth_service import TokenService

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def _load(name: str):
    spec = importlib.util.spec_from_file_location(f"{name}_module", PROJECT_ROOT / "scripts" / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    sys.modules[f"{name}_module"] = module
    spec.loader.exec_module(module)
    return module


issue_token = _load("issue_token")
init_db = _load("init_db")


@pytest.fixture(autouse=True)
def _env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'scripts.db'}")
    monkeypatch.setenv("JWT_SECRET", "script-secret")
    monkeypatch.setenv("ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "local")


def test_issue_token_prints_valid_token(capsys) -> None:
    assert issue_token.main(["user-7", "--ttl-hours", "1"]) == 0

    token = capsys.readouterr().out.strip()
    assert TokenService(signing_key="script-secret").validate_token(token) == "user-7"


def test_init_db_creates_database(tmp_path: Path, capsys) -> None:
    init_db.main()

    assert (tmp_path / "scripts.db").exists()
    assert "scripts.db" in capsys.readouterr().out
