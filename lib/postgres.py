import re

from lib.commands import run_command
from squasher.exceptions import VerificationException

__all__ = ("PostgresClient", "parse_row_count", "quote_ident")

ROW_COUNT_LINE = re.compile(r"^\s*(\d+)\s*$")


def quote_ident(name):
    return '"' + name.replace('"', '""') + '"'


def parse_row_count(output):
    """
    Extracts a single count from psql output.  Handles both --tuples-only
    output ("3") and the default aligned table ("count / ------- / 3 / (1 row)").
    """
    for line in output.splitlines():
        match = ROW_COUNT_LINE.match(line)
        if match:
            return int(match.group(1))
    raise VerificationException(f"could not find a row count in psql output: {output!r}")


class PostgresClient:
    def __init__(self, config, logger):
        self.config = config
        self.logger = logger

    @property
    def history_table(self):
        return f"{quote_ident(self.config.db_schema)}.{quote_ident(self.config.flyway_table)}"

    def _run(self, args, check=True):
        return run_command(
            args, self.logger, env=self.config.postgres_env(), timeout=self.config.command_timeout, check=check
        )

    def query(self, sql):
        return self._run(
            [self.config.psql_path, "-X", "-v", "ON_ERROR_STOP=1", "--tuples-only", "--no-align", "-c", sql]
        )

    def check_connection(self):
        self.query("SELECT 1")

    def history_table_exists(self):
        qualified = self.history_table.replace("'", "''")
        result = self.query(f"SELECT to_regclass('{qualified}') IS NOT NULL")
        return result.output.strip().splitlines()[-1:] == ["t"]

    def count_history_rows(self):
        result = self.query(f"SELECT COUNT(*) FROM {self.history_table}")
        return parse_row_count(result.output)

    def clear_history(self):
        self.query(f"DELETE FROM {self.history_table}")

    def dump_database(self, path):
        self._run([self.config.pg_dump_path, "--format=custom", "--no-password", f"--file={path}"])

    def dump_schema(self, path):
        self._run(
            [
                self.config.pg_dump_path,
                "--schema-only",
                "--no-owner",
                "--no-privileges",
                "--no-password",
                f"--schema={quote_ident(self.config.db_schema)}",
                f"--exclude-table={self.history_table}",
                f"--file={path}",
            ]
        )

    def restore_database(self, path):
        self._run(
            [
                self.config.pg_restore_path,
                "--clean",
                "--if-exists",
                "--no-owner",
                "--single-transaction",
                "--no-password",
                f"--dbname={self.config.db_name}",
                str(path),
            ]
        )
