import os
import re
from collections import namedtuple
from datetime import datetime
from datetime import timezone

__all__ = ("Migration", "baseline_filename", "list_versioned_migrations", "parse_migration", "write_baseline")

CREATE_SCHEMA_PATTERN = re.compile(r"^CREATE SCHEMA (?!IF NOT EXISTS )", re.IGNORECASE)
MIGRATION_FILE_PATTERN = re.compile(r"^V(?P<version>\d+(?:[._]\d+)*)__(?P<description>.+)\.sql$")

Migration = namedtuple("Migration", ("version", "description", "path"))


def version_key(version):
    return tuple(int(part) for part in re.split(r"[._]", version))


def parse_migration(path):
    match = MIGRATION_FILE_PATTERN.match(os.path.basename(path))
    if not match:
        return None
    return Migration(match.group("version"), match.group("description").replace("_", " "), path)


def list_versioned_migrations(directory):
    """
    Versioned migrations anywhere under ``directory`` ordered by version,
    the same files a ``filesystem:`` flyway location picks up.  Repeatable
    and callback scripts are skipped.
    """
    migrations = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in files:
            migration = parse_migration(os.path.join(root, name))
            if migration:
                migrations.append(migration)
    return sorted(migrations, key=lambda migration: version_key(migration.version))


def baseline_filename(version, description):
    return f"V{version}__{description.strip().replace(' ', '_')}.sql"


def _baseline_header(squashed, version, description):
    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines = [
        f"-- V{version}: {description}",
        f"-- Generated {generated_at} from the schema of a migrated database.",
        f"-- Squashes {len(squashed)} migrations:",
    ]
    lines.extend(f"--   V{migration.version} {migration.description}" for migration in squashed)
    return "\n".join(lines) + "\n\n"


def write_baseline(schema_dump, target, squashed, version, description):
    """
    Writes the baseline migration from a plain pg_dump schema export.
    psql meta-commands (\\restrict, \\connect, ...) are dropped since flyway
    runs the file over JDBC.
    Flyway creates the configured schemas itself, so ``CREATE SCHEMA``
    is made idempotent.
    """
    with open(schema_dump) as dump, open(target, "w") as baseline:
        baseline.write(_baseline_header(squashed, version, description))
        for line in dump:
            if line.startswith("\\"):
                continue
            baseline.write(CREATE_SCHEMA_PATTERN.sub("CREATE SCHEMA IF NOT EXISTS ", line))
    return target
