import logging.config
import os
from logging import NullHandler
from threading import local

import logstash_formatter
import watchtower
from boto3.session import Session
from yaml import safe_load

DEFAULT_AWS_LOGGING_NAMESPACE = "flyway-squash"
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_LOGGING_CONFIG_FILE = os.path.join(PROJECT_ROOT, "logconfig.yaml")
LOGGER_NAME = "flyway_squash"
# Third party loggers whose level can be set with <COMPONENT>_LOG_LEVEL
LOG_LEVEL_COMPONENTS = ("boto3", "botocore", "urllib3", "watchtower")

threadctx = local()


def configure_logging():
    log_config_file = os.getenv("SQUASH_LOGGING_CONFIG_FILE", DEFAULT_LOGGING_CONFIG_FILE)
    with open(log_config_file) as log_config_file:
        logconfig_dict = safe_load(log_config_file)
        logconfig_dict["disable_existing_loggers"] = False

    logging.config.dictConfig(logconfig_dict)
    logger = logging.getLogger(LOGGER_NAME)
    log_level = os.getenv("SQUASH_LOG_LEVEL", "INFO").upper()
    logger.setLevel(log_level)

    # Allows for the log level of certain loggers to be redefined with an env variable
    # e.g. BOTOCORE_LOG_LEVEL=DEBUG
    for component in LOG_LEVEL_COMPONENTS:
        env_key = component.replace(".", "_").upper()
        level = os.getenv(f"{env_key}_LOG_LEVEL")
        if level:
            logging.getLogger(component).setLevel(level.upper())


def logstash_formatter_factory():
    return logstash_formatter.LogstashFormatterV1()


def cloudwatch_handler():
    aws_access_key_id = os.getenv("AWS_ACCESS_KEY_ID", None)
    aws_secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY", None)
    aws_region_name = os.getenv("AWS_REGION_NAME", None)
    aws_log_group = os.getenv("AWS_LOG_GROUP", DEFAULT_AWS_LOGGING_NAMESPACE)
    create_log_group = str(os.getenv("AWS_CREATE_LOG_GROUP")).lower() == "true"

    if all((aws_access_key_id, aws_secret_access_key, aws_region_name)):
        aws_log_stream = os.getenv("AWS_LOG_STREAM", _get_hostname())
        print(f"Configuring watchtower logging (log_group_name={aws_log_group}, log_stream_name={aws_log_stream})")
        boto3_session = Session(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=aws_region_name,
        )
        boto3_client = boto3_session.client("logs")
        return watchtower.CloudWatchLogHandler(
            boto3_client=boto3_client,
            log_group_name=aws_log_group,
            log_stream_name=aws_log_stream,
            create_log_group=create_log_group,
        )
    else:
        return NullHandler()


def _get_hostname():
    return os.uname().nodename


class ContextualFilter(logging.Filter):
    """
    This filter gets the run_id of the squash run in progress
    and adds it to each log record.  This way every line emitted
    by a run can be matched to its backup directory without
    passing the id around.
    """

    def filter(self, log_record):
        log_record.run_id = getattr(threadctx, "run_id", None)
        return True


def get_logger(name):
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
