import os
import sys
from unittest import mock

import pytest

from squasher.config import Config
from squasher.environment import RuntimeEnvironment

# Make test helpers available to be imported
sys.path.append(os.path.join(os.path.dirname(__file__), "helpers"))

SETTINGS = (
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "DB_SCHEMA",
    "DB_SSL_MODE",
    "FLYWAY_URL",
    "FLYWAY_TABLE",
    "MIGRATIONS_DIR",
    "BACKUP_DIR",
    "BASELINE_VERSION",
    "BASELINE_DESCRIPTION",
    "PSQL_PATH",
    "PG_DUMP_PATH",
    "PG_RESTORE_PATH",
    "FLYWAY_PATH",
    "COMMAND_TIMEOUT",
    "PROMETHEUS_PUSHGATEWAY",
    "NAMESPACE",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION_NAME",
    "AWS_LOG_GROUP",
    "AWS_LOG_STREAM",
    "AWS_CREATE_LOG_GROUP",
)


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch):
    """Env files write straight into os.environ, so every test gets its own copy."""
    environ = {key: value for key, value in os.environ.items() if key not in SETTINGS}
    monkeypatch.setattr(os, "environ", environ)
    yield environ


@pytest.fixture
def migrations_dir(tmp_path):
    directory = tmp_path / "migrations"
    directory.mkdir()
    (directory / "V1__create_users.sql").write_text("CREATE TABLE users (id serial PRIMARY KEY);\n")
    (directory / "V2__add_email.sql").write_text("ALTER TABLE users ADD COLUMN email text;\n")
    (directory / "V10__add_orders.sql").write_text("CREATE TABLE orders (id serial PRIMARY KEY);\n")
    (directory / "R__views.sql").write_text("CREATE OR REPLACE VIEW user_emails AS SELECT email FROM users;\n")
    return directory


@pytest.fixture
def db_env(monkeypatch, tmp_path, migrations_dir):
    monkeypatch.setenv("DB_HOST", "db.example.com")
    monkeypatch.setenv("DB_PORT", "5433")
    monkeypatch.setenv("DB_NAME", "shop")
    monkeypatch.setenv("DB_USER", "shop_admin")
    monkeypatch.setenv("DB_PASSWORD", "s3cret")
    monkeypatch.setenv("MIGRATIONS_DIR", str(migrations_dir))
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))


@pytest.fixture
def config(db_env):  # noqa: ARG001
    return Config(RuntimeEnvironment.TEST)


@pytest.fixture
def mock_logger():
    return mock.MagicMock()
