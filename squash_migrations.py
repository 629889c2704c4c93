#!/usr/bin/env python
import sys
from argparse import ArgumentParser
from argparse import RawTextHelpFormatter
from functools import partial

from jobs.common import excepthook
from jobs.common import job_setup
from lib.backup import BackupLayout
from lib.backup import new_run_id
from lib.backup import read_manifest
from lib.flyway import FlywayClient
from lib.metrics import restore_run_count
from lib.metrics import squash_run_count
from lib.metrics import squash_step_duration
from lib.metrics import squash_step_failure_count
from lib.postgres import PostgresClient
from lib.restore import restore
from lib.squash import Squasher
from lib.validation import validate_environment
from squasher.envfile import load_env_file
from squasher.environment import RuntimeEnvironment
from squasher.exceptions import SquashException
from squasher.exceptions import SquashInterruptedException
from squasher.logging import configure_logging
from squasher.logging import get_logger
from squasher.logging import threadctx

__all__ = ("cli", "main", "run_restore", "run_squash")

PROMETHEUS_JOB = "flyway-migration-squash"
LOGGER_NAME = "squash_migrations"
COLLECTED_METRICS = (squash_step_duration, squash_step_failure_count, squash_run_count, restore_run_count)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _parse_args(argv=None):
    parser = ArgumentParser(
        description="""Squashes the Flyway migration history of a PostgreSQL database into one baseline migration.
Backs up the migration files and the database, exports the current schema as the baseline,
clears flyway's history table, installs the baseline and repairs checksums.
Settings are read from the env file (DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, ...).""",
        formatter_class=RawTextHelpFormatter,
    )
    parser.add_argument("--env-file", default=".env", help="KEY=VALUE file loaded into the environment.")
    parser.add_argument("--dry-run", action="store_true", help="Validate and log the plan without changing anything.")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("squash", help="Squash the migration history (default).")
    restore_parser = subparsers.add_parser("restore", help="Restore the backups of a previous squash run.")
    restore_parser.add_argument("backup_run_dir", help="Run directory under BACKUP_DIR, e.g. backups/20240101T120000")
    restore_parser.add_argument("--skip-database", action="store_true", help="Do not restore the database dump.")
    restore_parser.add_argument("--skip-migrations", action="store_true", help="Do not restore the migration files.")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "squash"
    return args


def _confirm(config, action, prompt_input=input):
    answer = prompt_input(f"This will {action} database '{config.db_name}'. Type the database name to continue: ")
    if answer.strip() != config.db_name:
        raise SquashException(title="Aborted", detail="confirmation did not match the database name")


def run_squash(config, logger, shutdown_handler, dry_run=False, assume_yes=False, prompt_input=input):
    run_id = new_run_id()
    threadctx.run_id = run_id
    layout = BackupLayout.for_run(config, run_id)

    if not (dry_run or assume_yes or config.missing_settings()):
        _confirm(config, "squash the migration history of", prompt_input)

    postgres = PostgresClient(config, logger)
    flyway = FlywayClient(config, logger)
    job = Squasher(
        config, postgres, flyway, logger, layout, dry_run=dry_run, interrupt=shutdown_handler.shut_down
    )
    job.run()
    return job


def _restore_layout(config, run_dir):
    layout = BackupLayout(run_dir, config.db_name, config.baseline_version, config.baseline_description)
    database = read_manifest(layout).get("database")
    if database and database != config.db_name:
        layout = BackupLayout(run_dir, database, config.baseline_version, config.baseline_description)
    return layout


def run_restore(config, logger, run_dir, database=True, migrations=True, assume_yes=False, prompt_input=input):
    layout = _restore_layout(config, run_dir)
    threadctx.run_id = layout.run_id

    postgres = PostgresClient(config, logger)
    validate_environment(config, postgres, None, logger, restore=True)

    if not assume_yes:
        _confirm(config, f"overwrite with backup {layout.run_id} the", prompt_input)

    restore(config, postgres, layout, logger, migrations=migrations, database=database)
    return layout


def main(logger, argv=None):
    args = _parse_args(argv)
    runtime_environment = RuntimeEnvironment.JOB if args.command == "squash" else RuntimeEnvironment.COMMAND

    try:
        load_env_file(args.env_file)
        config, shutdown_handler = job_setup(runtime_environment, COLLECTED_METRICS, PROMETHEUS_JOB)

        if args.command == "restore":
            run_restore(
                config,
                logger,
                args.backup_run_dir,
                database=not args.skip_database,
                migrations=not args.skip_migrations,
                assume_yes=args.yes,
            )
        else:
            run_squash(config, logger, shutdown_handler, dry_run=args.dry_run, assume_yes=args.yes)
    except (SquashInterruptedException, KeyboardInterrupt):
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    except SquashException as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_FAILURE

    return EXIT_SUCCESS


def cli():
    configure_logging()
    logger = get_logger(LOGGER_NAME)
    sys.excepthook = partial(excepthook, logger, "Migration squash")
    threadctx.run_id = None
    sys.exit(main(logger))


if __name__ == "__main__":
    cli()
