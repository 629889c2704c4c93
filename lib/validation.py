import os
import shutil

from lib.migrations import list_versioned_migrations
from squasher.exceptions import CommandFailedException
from squasher.exceptions import EnvironmentValidationException

__all__ = ("validate_environment",)


def _nearest_existing_dir(path):
    while not os.path.exists(path):
        parent = os.path.dirname(path)
        if parent == path:
            break
        path = parent
    return path


def check_tools(tools):
    return [f"'{tool}' is not installed or not on PATH" for tool in tools if shutil.which(tool) is None]


def check_migrations_dir(migrations_dir):
    if not os.path.isdir(migrations_dir):
        return [f"migrations directory {migrations_dir} does not exist"]
    if not list_versioned_migrations(migrations_dir):
        return [f"migrations directory {migrations_dir} holds no versioned migrations"]
    return []


def check_backup_dir(backup_dir):
    existing = _nearest_existing_dir(backup_dir)
    if not os.path.isdir(existing) or not os.access(existing, os.W_OK):
        return [f"backup directory {backup_dir} is not writable"]
    return []


def check_database(postgres, flyway, logger):
    try:
        postgres.check_connection()
    except CommandFailedException as e:
        logger.debug("Connection check output: %s", e.output)
        return [f"cannot connect to the database: {e.detail}"]

    if not postgres.history_table_exists():
        return [f"history table {postgres.history_table} does not exist"]

    try:
        flyway.validate()
    except CommandFailedException as e:
        return [f"flyway validate failed, apply or fix pending migrations first: {e.detail}"]
    return []


def validate_environment(config, postgres, flyway, logger, restore=False):
    """
    Runs every check that applies and raises a single exception listing all problems found.
    Database checks only run once settings and tools are in place.
    """
    problems = [f"{name} is not set" for name in config.missing_settings()]

    if restore:
        problems += check_tools((config.psql_path, config.pg_restore_path))
    else:
        problems += check_tools((config.psql_path, config.pg_dump_path, config.flyway_path))
        problems += check_migrations_dir(config.migrations_dir)
        problems += check_backup_dir(config.backup_dir)
        if not problems:
            problems += check_database(postgres, flyway, logger)

    if problems:
        for problem in problems:
            logger.error("Validation: %s", problem)
        raise EnvironmentValidationException(problems)

    logger.info("Environment validated")
