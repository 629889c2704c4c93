# mypy: disallow-untyped-defs

from __future__ import annotations


class SquashException(Exception):
    def __init__(self, title: str | None = None, detail: str | None = None):
        self.title = title
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.title}: {self.detail}" if self.detail else str(self.title)

    def to_json(self) -> dict[str, str | None]:
        return {
            "detail": self.detail,
            "title": self.title,
        }


class EnvFileException(SquashException):
    def __init__(self, detail: str):
        SquashException.__init__(self, title="Invalid Env File", detail=detail)


class EnvironmentValidationException(SquashException):
    def __init__(self, problems: list[str]):
        self.problems = problems
        SquashException.__init__(self, title="Environment Validation Failed", detail="; ".join(problems))


class ToolNotFoundException(SquashException):
    def __init__(self, tool: str):
        self.tool = tool
        SquashException.__init__(self, title="Tool Not Found", detail=f"'{tool}' is not installed or not on PATH")


class CommandFailedException(SquashException):
    def __init__(self, command: str, returncode: int | None, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        if returncode is None:
            detail = f"'{command}' timed out"
        else:
            detail = f"'{command}' exited with status {returncode}"
        SquashException.__init__(self, title="Command Failed", detail=detail)


class BackupException(SquashException):
    def __init__(self, detail: str):
        SquashException.__init__(self, title="Backup Error", detail=detail)


class VerificationException(SquashException):
    def __init__(self, detail: str):
        SquashException.__init__(self, title="Verification Failed", detail=detail)


class SquashInterruptedException(SquashException):
    def __init__(self, step: str):
        self.step = step
        SquashException.__init__(self, title="Interrupted", detail=f"stopped before step '{step}'")
