import pytest
from fastapi.testclient import TestClient

from auro_db.database import create_database, dispose_database, get_database
from auro_db.migrate import run_migrations
from auro_web.main import app

ENV_VARS = ("DATABASE_URL", "BUILDING", "SQL_ECHO", "LOG_LEVEL", "WEB_HOST", "WEB_PORT")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Start every test without configuration and without a shared handle.

    Running from ``tmp_path`` keeps a developer's ``.env`` file out of the
    settings.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    dispose_database()
    yield
    dispose_database()


@pytest.fixture()
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'auro.db'}"


@pytest.fixture()
def configured_env(monkeypatch, database_url):
    monkeypatch.setenv("DATABASE_URL", database_url)
    return database_url


@pytest.fixture()
def database(configured_env):
    """The process-wide handle, migrated to head."""
    db = get_database()
    assert run_migrations(db)
    return db


@pytest.fixture()
def unmigrated_database(tmp_path):
    """A handle on an empty database with no users table."""
    db = create_database(f"sqlite:///{tmp_path / 'empty.db'}")
    yield db
    db.dispose()


@pytest.fixture()
def client(database):
    """TestClient that runs the app's startup and shutdown hooks."""
    with TestClient(app) as c:
        yield c
