import os
from time import perf_counter

from lib import backup
from lib.metrics import squash_step_duration
from lib.migrations import list_versioned_migrations
from lib.migrations import write_baseline
from lib.validation import validate_environment
from squasher.exceptions import BackupException
from squasher.exceptions import SquashException
from squasher.exceptions import SquashInterruptedException
from squasher.exceptions import VerificationException
from squasher.instrumentation import log_squash_failed
from squasher.instrumentation import log_squash_interrupted
from squasher.instrumentation import log_squash_succeeded
from squasher.instrumentation import log_step_failed
from squasher.instrumentation import log_step_started
from squasher.instrumentation import log_step_succeeded

__all__ = ("STEPS", "Squasher")

STEPS = (
    "validate_environment",
    "backup_migrations",
    "backup_database",
    "export_schema",
    "clear_history",
    "install_baseline",
    "repair_checksums",
    "verify",
)

EXPECTED_HISTORY_ROWS = 1


class Squasher:
    """
    Runs the squash steps in order.  Each step only starts once the previous
    one succeeded; the interrupt callback is checked between steps.
    """

    def __init__(self, config, postgres, flyway, logger, layout, dry_run=False, interrupt=lambda: False):
        self.config = config
        self.postgres = postgres
        self.flyway = flyway
        self.logger = logger
        self.layout = layout
        self.dry_run = dry_run
        self.interrupt = interrupt
        self.squashed = []
        self.completed = []

    @property
    def history_cleared(self):
        return not self.dry_run and "clear_history" in self.completed

    @property
    def backup_created(self):
        return not self.dry_run and "backup_migrations" in self.completed

    def _history_at_risk(self, step):
        """True once ``clear_history`` has started, even if it did not finish."""
        return not self.dry_run and STEPS.index(step) >= STEPS.index("clear_history")

    def _backup_layout(self):
        return self.layout if self.backup_created else None

    def _relative_path(self, migration):
        return os.path.relpath(migration.path, self.config.migrations_dir)

    def run(self):
        for step in STEPS:
            if self.interrupt():
                log_squash_interrupted(self.logger, step, self._backup_layout(), self.history_cleared)
                raise SquashInterruptedException(step)

            log_step_started(self.logger, step, self.dry_run)
            started = perf_counter()
            try:
                with squash_step_duration.labels(step=step).time():
                    getattr(self, step)()
            except (SquashException, OSError) as e:
                log_step_failed(self.logger, step, e, self._backup_layout(), self._history_at_risk(step))
                log_squash_failed(self.logger)
                raise
            except KeyboardInterrupt:
                log_squash_interrupted(
                    self.logger, step, self._backup_layout(), self._history_at_risk(step), during=True
                )
                raise

            self.completed.append(step)
            log_step_succeeded(self.logger, step, perf_counter() - started)
            if self.backup_created:
                self._write_manifest()

        if self.dry_run:
            self.logger.info("Dry run finished, nothing was changed")
        else:
            log_squash_succeeded(self.logger, self.layout, len(self.squashed))

    def _write_manifest(self):
        backup.write_manifest(
            self.layout,
            {
                "run_id": self.layout.run_id,
                "database": self.config.db_name,
                "schema": self.config.db_schema,
                "history_table": self.config.flyway_table,
                "migrations_dir": self.config.migrations_dir,
                "baseline": self.layout.baseline_name,
                "squashed": [self._relative_path(migration) for migration in self.squashed],
                "completed_steps": list(self.completed),
            },
        )

    def validate_environment(self):
        validate_environment(self.config, self.postgres, self.flyway, self.logger)
        self.squashed = list_versioned_migrations(self.config.migrations_dir)
        self.logger.info(
            "Found %d versioned migrations (V%s to V%s)",
            len(self.squashed),
            self.squashed[0].version,
            self.squashed[-1].version,
        )

    def backup_migrations(self):
        if self.dry_run:
            self.logger.info("Would copy %s to %s", self.config.migrations_dir, self.layout.migrations_dir)
            return

        self.layout.create()
        copied_paths = backup.backup_migrations(self.config.migrations_dir, self.layout)
        copied = {os.path.relpath(path, self.layout.migrations_dir) for path in copied_paths}
        missing = [migration.path for migration in self.squashed if self._relative_path(migration) not in copied]
        if missing:
            raise BackupException(f"migrations missing from backup: {', '.join(missing)}")

    def backup_database(self):
        if self.dry_run:
            self.logger.info("Would dump database %s to %s", self.config.db_name, self.layout.database_dump)
            return

        self.postgres.dump_database(self.layout.database_dump)
        if not os.path.isfile(self.layout.database_dump) or os.path.getsize(self.layout.database_dump) == 0:
            raise BackupException(f"database dump {self.layout.database_dump} is empty")
        self.logger.info(
            "Database dump written to %s (%d bytes)",
            self.layout.database_dump,
            os.path.getsize(self.layout.database_dump),
        )

    def export_schema(self):
        if self.dry_run:
            self.logger.info("Would export schema %s to %s", self.config.db_schema, self.layout.staged_baseline)
            return

        self.postgres.dump_schema(self.layout.schema_dump)
        write_baseline(
            self.layout.schema_dump,
            self.layout.staged_baseline,
            self.squashed,
            self.config.baseline_version,
            self.config.baseline_description,
        )
        self.logger.info("Baseline staged at %s", self.layout.staged_baseline)

    def clear_history(self):
        if self.dry_run:
            self.logger.info("Would delete all rows from %s", self.postgres.history_table)
            return

        rows = self.postgres.count_history_rows()
        self.postgres.clear_history()
        self.logger.info("Deleted %d rows from %s", rows, self.postgres.history_table)

    def install_baseline(self):
        if self.dry_run:
            self.logger.info(
                "Would replace %d migrations with %s and baseline flyway at version %s",
                len(self.squashed),
                self.layout.baseline_name,
                self.config.baseline_version,
            )
            return

        backup.retire_migrations(self.squashed, self.config.migrations_dir, self.layout)
        backup.install_baseline(self.layout, self.config.migrations_dir)
        self.flyway.baseline(self.config.baseline_version, self.config.baseline_description)

    def repair_checksums(self):
        if self.dry_run:
            self.logger.info("Would run flyway repair")
            return

        self.flyway.repair()

    def verify(self):
        if self.dry_run:
            self.logger.info("Would verify %s holds a single baseline row", self.postgres.history_table)
            return

        rows = self.postgres.count_history_rows()
        if rows != EXPECTED_HISTORY_ROWS:
            raise VerificationException(
                f"{self.postgres.history_table} holds {rows} rows, expected {EXPECTED_HISTORY_ROWS}"
            )

        remaining = [self._relative_path(m) for m in list_versioned_migrations(self.config.migrations_dir)]
        if remaining != [self.layout.baseline_name]:
            raise VerificationException(f"expected only {self.layout.baseline_name} in migrations, found {remaining}")

        self.flyway.validate()
        self.flyway.info()
        self.logger.info("Verified %s holds a single baseline row", self.postgres.history_table)
