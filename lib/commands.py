import os
import shlex
from collections import namedtuple
from subprocess import PIPE
from subprocess import STDOUT
from subprocess import Popen
from threading import Timer

from squasher.exceptions import CommandFailedException
from squasher.exceptions import ToolNotFoundException

__all__ = ("CommandResult", "format_command", "run_command")

CommandResult = namedtuple("CommandResult", ("command", "returncode", "output"))


def format_command(args):
    return shlex.join(str(arg) for arg in args)


def log_subprocess_output(pipe, logger, tool):
    lines = []
    for line in iter(pipe.readline, ""):
        line = line.rstrip("\n")
        logger.info("%s: %s", tool, line)
        lines.append(line)
    return lines


def run_command(args, logger, env=None, timeout=None, check=True):
    """
    Runs an external tool with stdout and stderr merged, logging every
    line as it is produced.  The child inherits the current environment
    with ``env`` layered on top.
    """
    args = [str(arg) for arg in args]
    command = format_command(args)
    tool = os.path.basename(args[0])
    child_env = {**os.environ, **(env or {})}

    logger.debug("Running: %s", command)
    try:
        process = Popen(args, stdout=PIPE, stderr=STDOUT, env=child_env, text=True, errors="replace")
    except FileNotFoundError:
        raise ToolNotFoundException(args[0])

    killed = []

    def _kill():
        killed.append(True)
        process.kill()

    # readline blocks until the child closes stdout, so the timeout has to kill it from another thread
    timer = Timer(timeout, _kill) if timeout else None
    if timer:
        timer.start()
    try:
        with process.stdout:
            lines = log_subprocess_output(process.stdout, logger, tool)
        returncode = process.wait()
    except BaseException:
        process.kill()
        process.wait()
        raise
    finally:
        if timer:
            timer.cancel()

    output = "\n".join(lines)
    # a child that exited by itself before the timer fired keeps its own status
    if killed and returncode < 0:
        raise CommandFailedException(command, None, output)
    if check and returncode != 0:
        raise CommandFailedException(command, returncode, output)

    return CommandResult(command, returncode, output)
