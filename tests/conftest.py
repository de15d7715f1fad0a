"""Shared pytest fixtures for all tests."""

import pytest

from testreset.config import Config
from testreset.db.sqlite import SqliteDatabase
from testreset.manager import TestEnvironment
from testreset.ui.console import ConsoleUI

from mocks import INSTALLED_ROWS, PREFIX, SCHEMA, VERSION_FILES


def install_site(db: SqliteDatabase) -> None:
    """Create the golden schema and installed rows."""
    db.change_database_structure(SCHEMA)
    for table, rows in INSTALLED_ROWS.items():
        for row in rows:
            db.insert_record(table, row)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep TESTRESET_* variables of the host from leaking into tests."""
    for name in (
        "TESTRESET_DATAROOT",
        "TESTRESET_DB_PASSWORD",
        "TESTRESET_SEQUENCE_START",
        "TESTRESET_SCENARIO_RUNNING",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def code_root(tmp_path):
    """Code root with a few versioned components."""
    root = tmp_path / "code"
    for relative, content in VERSION_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def dataroot(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, code_root, dataroot) -> Config:
    config = Config()
    config.database.type = "sqlite"
    config.database.path = str(tmp_path / "test.db")
    config.database.prefix = PREFIX
    config.paths.dirroot = str(code_root)
    config.paths.dataroot = str(dataroot)
    config.output.quiet = True
    return config


@pytest.fixture
def db(config):
    """Installed sqlite database."""
    database = SqliteDatabase(config.database.path, prefix=config.database.prefix)
    install_site(database)
    yield database
    database.close()


@pytest.fixture
def empty_db(tmp_path):
    """Sqlite database with no tables at all."""
    database = SqliteDatabase(str(tmp_path / "empty.db"), prefix=PREFIX)
    yield database
    database.close()


@pytest.fixture
def env(config, db) -> TestEnvironment:
    """Environment over the installed database, not captured yet."""
    environment = TestEnvironment(config, db, ui=ConsoleUI(quiet=True))
    yield environment
    environment.context.close()


@pytest.fixture
def captured_env(env) -> TestEnvironment:
    """Environment with the installed state captured."""
    env.capture()
    return env
