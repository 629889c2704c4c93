import os
import re

from squasher.exceptions import EnvFileException
from squasher.logging import get_logger

__all__ = ("parse_env_file", "load_env_file")

logger = get_logger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
INLINE_COMMENT = re.compile(r"\s+#.*$")


def _parse_value(raw):
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return INLINE_COMMENT.sub("", value)


def parse_env_file(path):
    """
    Reads KEY=VALUE pairs, one per line, the way a shell would source them.
    Blank lines and # comments are skipped and a leading "export " is allowed.
    """
    values = {}
    with open(path) as env_file:
        for line_number, line in enumerate(env_file, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()

            key, separator, raw_value = line.partition("=")
            key = key.strip()
            if not separator:
                raise EnvFileException(f"{path}:{line_number}: expected KEY=VALUE")
            if not KEY_PATTERN.match(key):
                raise EnvFileException(f"{path}:{line_number}: invalid variable name '{key}'")

            values[key] = _parse_value(raw_value)

    return values


def load_env_file(path):
    if not os.path.isfile(path):
        raise EnvFileException(f"{path} does not exist")

    values = parse_env_file(path)
    for key, value in values.items():
        if key in os.environ and os.environ[key] != value:
            logger.debug("Overriding %s from %s", key, path)
        os.environ[key] = value

    logger.info("Loaded %d variables from %s", len(values), path)
    return values
