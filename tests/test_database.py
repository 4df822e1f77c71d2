import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from auro_db import database as database_module
from auro_db.config import Settings
from auro_db.database import (
    MISSING_URL_MESSAGE,
    ConfigurationError,
    Configured,
    Database,
    DeferredForBuild,
    MissingFatal,
    bootstrap,
    create_database,
    dispose_database,
    get_database,
    normalize_url,
    resolve_database,
)


def test_resolve_missing_url_is_fatal():
    resolution = resolve_database(Settings(database_url=None, building=False))
    assert resolution == MissingFatal(MISSING_URL_MESSAGE)


def test_resolve_missing_url_while_building_is_deferred():
    resolution = resolve_database(Settings(database_url=None, building=True))
    assert isinstance(resolution, DeferredForBuild)


def test_resolve_with_url_is_configured(database_url):
    resolution = resolve_database(Settings(database_url=database_url))

    assert isinstance(resolution, Configured)
    assert isinstance(resolution.database, Database)
    resolution.database.dispose()


def test_missing_url_raises_before_any_engine_is_created(monkeypatch):
    """No connection is attempted when DATABASE_URL is absent."""
    engine_factory = MagicMock()
    monkeypatch.setattr(database_module, "create_engine", engine_factory)

    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        bootstrap()
    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        get_database()

    assert not engine_factory.called


def test_building_tolerates_missing_url(monkeypatch, caplog):
    monkeypatch.setenv("BUILDING", "true")
    caplog.set_level(logging.WARNING, logger="auro_db.database")

    resolution = bootstrap()

    assert isinstance(resolution, DeferredForBuild)
    assert "deferred while building" in caplog.text


def test_handle_requested_while_building_raises(monkeypatch):
    monkeypatch.setenv("BUILDING", "1")

    with pytest.raises(ConfigurationError, match="while building"):
        get_database()


def test_building_with_url_still_configures(monkeypatch, configured_env):
    monkeypatch.setenv("BUILDING", "1")
    assert isinstance(bootstrap(), Configured)


def test_handle_is_constructed_once(configured_env):
    first = get_database()
    second = get_database()

    assert first is second
    assert isinstance(bootstrap(), Configured)
    assert bootstrap().database is first


def test_dispose_forgets_the_handle(configured_env):
    first = get_database()
    dispose_database()

    assert get_database() is not first


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db:5432/auro", "postgresql+psycopg://u:p@db:5432/auro"),
        ("postgresql://u:p@db/auro", "postgresql+psycopg://u:p@db/auro"),
        ("postgresql+psycopg://u:p@db/auro", "postgresql+psycopg://u:p@db/auro"),
        (" sqlite:///auro.db ", "sqlite:///auro.db"),
    ],
)
def test_normalize_url(url, expected):
    assert normalize_url(url) == expected


@pytest.mark.parametrize("url", ["not a url", "nosuchdialect://host/db"])
def test_unusable_url_raises_configuration_error(url):
    with pytest.raises(ConfigurationError, match="Unusable DATABASE_URL"):
        create_database(url)


def test_session_scope_rolls_back_on_error(database):
    with pytest.raises(ValueError):
        with database.session_scope() as session:
            session.execute(text("INSERT INTO users (email) VALUES ('rollback@test.dk')"))
            raise ValueError("boom")

    with database.session_scope() as session:
        count = session.execute(text("SELECT COUNT(*) FROM users")).scalar_one()
    assert count == 0


def test_session_scope_commits(database):
    with database.session_scope() as session:
        session.execute(text("INSERT INTO users (email) VALUES ('commit@test.dk')"))

    with database.session() as session:
        emails = session.execute(text("SELECT email FROM users")).scalars().all()
    assert emails == ["commit@test.dk"]


def test_sqlite_ddl_is_rolled_back_with_its_transaction(unmigrated_database):
    with pytest.raises(ValueError):
        with unmigrated_database.engine.begin() as conn:
            conn.execute(text("CREATE TABLE scratch (id INTEGER PRIMARY KEY)"))
            raise ValueError("boom")

    with unmigrated_database.engine.connect() as conn:
        tables = conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'")).scalars().all()
    assert "scratch" not in tables
