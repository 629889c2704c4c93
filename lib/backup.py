import os
import shutil
from datetime import datetime

import yaml

from lib.migrations import baseline_filename
from lib.migrations import list_versioned_migrations
from squasher.exceptions import BackupException
from squasher.logging import get_logger

__all__ = (
    "BackupLayout",
    "backup_migrations",
    "install_baseline",
    "new_run_id",
    "read_manifest",
    "restore_migrations",
    "retire_migrations",
    "write_manifest",
)

logger = get_logger(__name__)

RUN_ID_FORMAT = "%Y%m%dT%H%M%S"
MANIFEST_FILE = "manifest.yaml"


def new_run_id():
    return datetime.now().strftime(RUN_ID_FORMAT)


class BackupLayout:
    def __init__(self, run_dir, db_name, baseline_version, baseline_description):
        self.run_dir = os.path.abspath(run_dir)
        self.run_id = os.path.basename(self.run_dir)
        self.db_name = db_name
        self.baseline_name = baseline_filename(baseline_version, baseline_description)

    @classmethod
    def for_run(cls, config, run_id):
        return cls(
            os.path.join(config.backup_dir, run_id),
            config.db_name,
            config.baseline_version,
            config.baseline_description,
        )

    @property
    def migrations_dir(self):
        return os.path.join(self.run_dir, "migrations")

    @property
    def database_dump(self):
        return os.path.join(self.run_dir, f"{self.db_name}.dump")

    @property
    def schema_dump(self):
        return os.path.join(self.run_dir, "schema.sql")

    @property
    def staged_baseline(self):
        return os.path.join(self.run_dir, self.baseline_name)

    @property
    def manifest(self):
        return os.path.join(self.run_dir, MANIFEST_FILE)

    def create(self):
        if os.path.exists(self.run_dir):
            raise BackupException(f"{self.run_dir} already exists")
        os.makedirs(self.migrations_dir)
        return self


def _copy_tree(source_dir, target_dir):
    copied = []
    for root, dirs, files in os.walk(source_dir):
        dirs.sort()
        for name in sorted(files):
            source = os.path.join(root, name)
            target = os.path.join(target_dir, os.path.relpath(source, source_dir))
            os.makedirs(os.path.dirname(target), exist_ok=True)
            copied.append(shutil.copy2(source, target))
    return copied


def backup_migrations(migrations_dir, layout):
    """Copies every file under ``migrations_dir``, subdirectories included, into the run's backup."""
    copied = _copy_tree(migrations_dir, layout.migrations_dir)
    logger.info("Copied %d files from %s to %s", len(copied), migrations_dir, layout.migrations_dir)
    return copied


def retire_migrations(migrations, migrations_dir, layout):
    for migration in migrations:
        backup_copy = os.path.join(layout.migrations_dir, os.path.relpath(migration.path, migrations_dir))
        if not os.path.isfile(backup_copy):
            raise BackupException(f"{migration.path} has no backup copy in {layout.migrations_dir}")

    for migration in migrations:
        os.remove(migration.path)
    logger.info("Removed %d squashed migrations", len(migrations))


def install_baseline(layout, migrations_dir):
    target = os.path.join(migrations_dir, layout.baseline_name)
    if os.path.exists(target):
        raise BackupException(f"{target} already exists")
    if not os.path.isfile(layout.staged_baseline):
        raise BackupException(f"{layout.staged_baseline} does not exist")
    shutil.move(layout.staged_baseline, target)
    logger.info("Installed %s", target)
    return target


def restore_migrations(layout, migrations_dir):
    if not os.path.isdir(layout.migrations_dir):
        raise BackupException(f"{layout.migrations_dir} does not exist")

    for migration in list_versioned_migrations(migrations_dir):
        os.remove(migration.path)

    restored = _copy_tree(layout.migrations_dir, migrations_dir)
    logger.info("Restored %d files from %s to %s", len(restored), layout.migrations_dir, migrations_dir)
    return restored


def write_manifest(layout, data):
    with open(layout.manifest, "w") as manifest:
        yaml.safe_dump(data, manifest, default_flow_style=False, sort_keys=False)


def read_manifest(layout):
    if not os.path.isfile(layout.manifest):
        return {}
    with open(layout.manifest) as manifest:
        return yaml.safe_load(manifest) or {}
