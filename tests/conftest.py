import os
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text

# Ensure tests run against SQLite when DATABASE_URL is not defined
os.environ.setdefault("DATABASE_URL", "sqlite:////tmp/wod_gateway_test.db")
os.environ.setdefault("OPENAI_API_KEY", "test")

from fastapi.testclient import TestClient
from wod_gateway.main import app
from wod_gateway.config import Settings
from wod_gateway.db import SessionLocal, init_db
from wod_gateway.dependencies import get_backend
from wod_gateway.client import retry as retry_module
from tests.utils.fakes import FakeBackend


def _sqlite_path() -> Path | None:
    db_url = os.environ.get("DATABASE_URL", "")
    if db_url.startswith("sqlite:///"):
        return Path(db_url.replace("sqlite:///", ""))
    return None


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply Alembic migrations to a fresh database before running tests."""
    db_path = _sqlite_path()
    if db_path is not None and db_path.exists():
        db_path.unlink()
    cfg_path = Path(__file__).resolve().parent.parent / "alembic.ini"
    config = Config(str(cfg_path))
    stdout_buf, stderr_buf = StringIO(), StringIO()
    try:
        with redirect_stdout(stdout_buf), redirect_stderr(stderr_buf):
            command.upgrade(config, "head")
    except Exception as exc:
        print("Alembic upgrade failed:", exc)
        print("stdout:\n", stdout_buf.getvalue())
        print("stderr:\n", stderr_buf.getvalue())
        raise
    init_db(Settings())


@pytest.fixture(scope="session", autouse=True)
def remove_test_db():
    """Remove temporary SQLite database after tests finish."""
    yield
    db_path = _sqlite_path()
    if db_path is not None and db_path.exists():
        db_path.unlink()


@pytest.fixture(autouse=True)
def clean_tables(apply_migrations):
    with SessionLocal() as session:
        session.execute(text("DELETE FROM api_usage"))
        session.execute(text("DELETE FROM profiles"))
        session.commit()
    yield


@pytest.fixture(scope="module")
def client(apply_migrations):
    """Yields a TestClient with lifespan events."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sleeps(monkeypatch):
    """Record client backoff delays instead of waiting them out."""
    recorded: list[float] = []

    async def _fake_sleep(delay, signal):
        recorded.append(delay)
        if signal is not None:
            signal.raise_if_cancelled()

    monkeypatch.setattr(retry_module, "_sleep", _fake_sleep)
    return recorded


@pytest.fixture
def fake_backend():
    backend = FakeBackend()
    app.dependency_overrides[get_backend] = lambda: backend
    yield backend
    app.dependency_overrides.pop(get_backend, None)
