import os

from lib import backup
from squasher.exceptions import BackupException
from squasher.instrumentation import log_restore_failed
from squasher.instrumentation import log_restore_succeeded

__all__ = ("restore",)


def restore(config, postgres, layout, logger, migrations=True, database=True):
    """
    Puts a squash run's backups back in place: the database from its dump and
    the migrations directory from the copied files.
    """
    manifest = backup.read_manifest(layout)
    if manifest:
        logger.info(
            "Restoring run %s of database %s (%d squashed migrations)",
            manifest.get("run_id", layout.run_id),
            manifest.get("database"),
            len(manifest.get("squashed", [])),
        )

    try:
        if database:
            if not os.path.isfile(layout.database_dump):
                raise BackupException(f"{layout.database_dump} does not exist")
            postgres.restore_database(layout.database_dump)
            logger.info("Database restored from %s", layout.database_dump)

        if migrations:
            backup.restore_migrations(layout, config.migrations_dir)
    except Exception as e:
        log_restore_failed(logger, layout, e)
        raise

    log_restore_succeeded(logger, layout)
