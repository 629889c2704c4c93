from lib.commands import run_command

__all__ = ("FlywayClient",)


class FlywayClient:
    """Thin wrapper over the flyway CLI.  Connection settings travel as FLYWAY_* environment variables."""

    def __init__(self, config, logger):
        self.config = config
        self.logger = logger

    def run(self, command, *options):
        return run_command(
            [self.config.flyway_path, command, *options],
            self.logger,
            env=self.config.flyway_env(),
            timeout=self.config.command_timeout,
        )

    def validate(self):
        return self.run("validate")

    def info(self):
        return self.run("info")

    def baseline(self, version, description):
        return self.run("baseline", f"-baselineVersion={version}", f"-baselineDescription={description}")

    def repair(self):
        return self.run("repair")
