import os
import re

from squasher.common import get_build_version
from squasher.logging import get_logger

BASELINE_VERSION_PATTERN = re.compile(r"^\d+(?:[._]\d+)*$")

REQUIRED_SETTINGS = {
    "DB_NAME": "_db_name",
    "DB_USER": "_db_user",
    "DB_PASSWORD": "_db_password",
}


class Config:
    SSL_VERIFY_FULL = "verify-full"

    def __init__(self, runtime_environment):
        self.logger = get_logger(__name__)
        self._runtime_environment = runtime_environment

        self._db_host = os.getenv("DB_HOST", "localhost")
        self._db_port = int(os.getenv("DB_PORT", "5432"))
        self._db_name = os.getenv("DB_NAME")
        self._db_user = os.getenv("DB_USER")
        self._db_password = os.getenv("DB_PASSWORD")
        self._db_ssl_mode = os.getenv("DB_SSL_MODE", "")
        self.db_schema = os.getenv("DB_SCHEMA", "public")

        self.flyway_table = os.getenv("FLYWAY_TABLE", "flyway_schema_history")
        self.flyway_url = os.getenv("FLYWAY_URL") or self._build_jdbc_url()

        self.migrations_dir = os.path.abspath(os.getenv("MIGRATIONS_DIR", "migrations"))
        self.backup_dir = os.path.abspath(os.getenv("BACKUP_DIR", "backups"))

        self.baseline_version = os.getenv("BASELINE_VERSION", "1")
        if not BASELINE_VERSION_PATTERN.match(self.baseline_version):
            raise ValueError(f"{self.baseline_version} is not a valid value for BASELINE_VERSION")
        self.baseline_description = os.getenv("BASELINE_DESCRIPTION", "baseline")

        self.psql_path = os.getenv("PSQL_PATH", "psql")
        self.pg_dump_path = os.getenv("PG_DUMP_PATH", "pg_dump")
        self.pg_restore_path = os.getenv("PG_RESTORE_PATH", "pg_restore")
        self.flyway_path = os.getenv("FLYWAY_PATH", "flyway")
        self.command_timeout = int(os.getenv("COMMAND_TIMEOUT", "3600"))

        self.prometheus_pushgateway = os.environ.get("PROMETHEUS_PUSHGATEWAY")
        self.kubernetes_namespace = os.environ.get("NAMESPACE")

    @property
    def db_name(self):
        return self._db_name

    def missing_settings(self):
        return [name for name, attribute in REQUIRED_SETTINGS.items() if not getattr(self, attribute)]

    def _build_jdbc_url(self):
        jdbc_url = f"jdbc:postgresql://{self._db_host}:{self._db_port}/{self._db_name}"
        if self._db_ssl_mode:
            jdbc_url += f"?sslmode={self._db_ssl_mode}"
        return jdbc_url

    def _build_db_uri(self, hide_password=False):
        db_user = self._db_user
        db_password = self._db_password

        if hide_password:
            db_user = "xxxx"
            db_password = "XXXX"

        db_uri = f"postgresql://{db_user}:{db_password}@{self._db_host}:{self._db_port}/{self._db_name}"
        if self._db_ssl_mode:
            db_uri += f"?sslmode={self._db_ssl_mode}"
        return db_uri

    def postgres_env(self):
        env = {
            "PGHOST": self._db_host,
            "PGPORT": str(self._db_port),
            "PGDATABASE": self._db_name or "",
            "PGUSER": self._db_user or "",
            "PGPASSWORD": self._db_password or "",
        }
        if self._db_ssl_mode:
            env["PGSSLMODE"] = self._db_ssl_mode
        return env

    def flyway_env(self):
        return {
            "FLYWAY_URL": self.flyway_url,
            "FLYWAY_USER": self._db_user or "",
            "FLYWAY_PASSWORD": self._db_password or "",
            "FLYWAY_SCHEMAS": self.db_schema,
            "FLYWAY_TABLE": self.flyway_table,
            "FLYWAY_LOCATIONS": f"filesystem:{self.migrations_dir}",
        }

    def log_configuration(self):
        if not self._runtime_environment.logging_enabled:
            return

        self.logger.info("Flyway Squash Configuration:")
        self.logger.info("Build Version: %s", get_build_version())
        self.logger.info("DB Host: %s", self._db_host)
        self.logger.info("DB Name: %s", self._db_name)
        self.logger.info("DB Schema: %s", self.db_schema)
        self.logger.info("DB Connection URI: %s", self._build_db_uri(hide_password=True))
        self.logger.info("Flyway URL: %s", self.flyway_url)
        self.logger.info("Flyway History Table: %s", self.flyway_table)
        self.logger.info("Migrations Directory: %s", self.migrations_dir)
        self.logger.info("Backup Directory: %s", self.backup_dir)
        self.logger.info("Baseline: V%s__%s", self.baseline_version, self.baseline_description)

        if self._db_ssl_mode == self.SSL_VERIFY_FULL:
            self.logger.info("Postgresql SSL verification type: %s", self._db_ssl_mode)

        if self._runtime_environment.metrics_pushgateway_enabled:
            self.logger.info("Metrics Pushgateway: %s", self.prometheus_pushgateway)
            self.logger.info("Kubernetes Namespace: %s", self.kubernetes_namespace)
