from __future__ import annotations

import os
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.tubely.db.db_init import init_db

os.environ.setdefault("JWT_SECRET", "test-signing-key")


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    engine = create_engine(f"sqlite:///{tmp_path / 'tubely.db'}", future=True)
    init_db(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
