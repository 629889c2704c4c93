from unittest import mock

import pytest

from lib.validation import validate_environment
from squasher.config import Config
from squasher.environment import RuntimeEnvironment
from squasher.exceptions import CommandFailedException
from squasher.exceptions import EnvironmentValidationException


@pytest.fixture
def which_mock(mocker):
    return mocker.patch("lib.validation.shutil.which", side_effect=lambda tool: f"/usr/bin/{tool}")


@pytest.fixture
def postgres():
    postgres = mock.MagicMock()
    postgres.history_table = '"public"."flyway_schema_history"'
    postgres.history_table_exists.return_value = True
    return postgres


@pytest.fixture
def flyway():
    return mock.MagicMock()


@pytest.mark.usefixtures("which_mock")
def test_validate_environment(config, postgres, flyway, mock_logger):
    validate_environment(config, postgres, flyway, mock_logger)

    postgres.check_connection.assert_called_once()
    postgres.history_table_exists.assert_called_once()
    flyway.validate.assert_called_once()


@pytest.mark.usefixtures("which_mock")
def test_validate_environment_missing_settings_skips_database(
    monkeypatch, migrations_dir, postgres, flyway, mock_logger
):
    monkeypatch.setenv("MIGRATIONS_DIR", str(migrations_dir))
    monkeypatch.setenv("DB_NAME", "shop")
    config = Config(RuntimeEnvironment.TEST)

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert excinfo.value.problems == ["DB_USER is not set", "DB_PASSWORD is not set"]
    postgres.check_connection.assert_not_called()


def test_validate_environment_collects_all_problems(config, postgres, flyway, mock_logger, mocker, tmp_path):
    mocker.patch("lib.validation.shutil.which", side_effect=lambda tool: None if tool == "flyway" else tool)
    config.migrations_dir = str(tmp_path / "missing")

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert excinfo.value.problems == [
        "'flyway' is not installed or not on PATH",
        f"migrations directory {tmp_path / 'missing'} does not exist",
    ]
    assert mock_logger.error.call_count == 2


@pytest.mark.usefixtures("which_mock")
def test_validate_environment_no_versioned_migrations(config, postgres, flyway, mock_logger, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    (empty / "R__views.sql").write_text("SELECT 1;\n")
    config.migrations_dir = str(empty)

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert "holds no versioned migrations" in excinfo.value.problems[0]


@pytest.mark.usefixtures("which_mock")
def test_validate_environment_unreachable_database(config, postgres, flyway, mock_logger):
    postgres.check_connection.side_effect = CommandFailedException("psql -c 'SELECT 1'", 2, "could not connect")

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert excinfo.value.problems[0].startswith("cannot connect to the database")
    flyway.validate.assert_not_called()


@pytest.mark.usefixtures("which_mock")
def test_validate_environment_missing_history_table(config, postgres, flyway, mock_logger):
    postgres.history_table_exists.return_value = False

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert excinfo.value.problems == ['history table "public"."flyway_schema_history" does not exist']


@pytest.mark.usefixtures("which_mock")
def test_validate_environment_pending_migrations(config, postgres, flyway, mock_logger):
    flyway.validate.side_effect = CommandFailedException(
        "flyway validate", 1, "Detected resolved migration not applied"
    )

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, flyway, mock_logger)

    assert excinfo.value.problems[0].startswith("flyway validate failed")


def test_validate_environment_restore_checks_pg_restore(config, postgres, mock_logger, mocker):
    which_mock = mocker.patch("lib.validation.shutil.which", return_value=None)

    with pytest.raises(EnvironmentValidationException) as excinfo:
        validate_environment(config, postgres, None, mock_logger, restore=True)

    assert [call.args[0] for call in which_mock.call_args_list] == ["psql", "pg_restore"]
    assert len(excinfo.value.problems) == 2
    postgres.check_connection.assert_not_called()
