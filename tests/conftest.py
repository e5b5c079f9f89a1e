import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="dovi_test_"))
_db_path = _tmpdir / "test.db"

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_db_path.as_posix()}")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("REVALIDATE_URL", "")

import pytest
from fastapi.testclient import TestClient

from dovi.core.rate_limit import limiter
from dovi.db.base import Base
from dovi.db.session import engine, SessionLocal
from dovi.main import create_app
from dovi.services.invalidation import read_cache


@pytest.fixture()
def clean_db():
    limiter.reset()
    read_cache.clear()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(clean_db):
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(clean_db):
    app = create_app()
    with TestClient(app) as c:
        yield c
