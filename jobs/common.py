from functools import partial

from prometheus_client import CollectorRegistry
from prometheus_client import push_to_gateway

from lib.handlers import ShutdownHandler
from lib.handlers import register_shutdown
from squasher.config import Config

__all__ = ("job_setup",)


def init_config(runtime_environment):
    config = Config(runtime_environment)
    config.log_configuration()
    return config


def prometheus_job(namespace, prometheus_job):
    return f"{prometheus_job}-{namespace}" if namespace else prometheus_job


def excepthook(logger, job_type, type, value, traceback):  # noqa: ARG001, needed by sys.excepthook
    logger.exception("%s failed", job_type, exc_info=value)


def register_metrics_push(config, runtime_environment, collected_metrics, prometheus_job_name):
    if not (runtime_environment.metrics_pushgateway_enabled and config.prometheus_pushgateway):
        return None

    registry = CollectorRegistry()
    for metric in collected_metrics:
        registry.register(metric)
    job = prometheus_job(config.kubernetes_namespace, prometheus_job_name)
    prometheus_shutdown = partial(push_to_gateway, config.prometheus_pushgateway, job, registry)
    register_shutdown(prometheus_shutdown, "Pushing metrics")
    return registry


def job_setup(runtime_environment, collected_metrics: tuple, prometheus_job_name: str):
    config = init_config(runtime_environment)
    register_metrics_push(config, runtime_environment, collected_metrics, prometheus_job_name)

    shutdown_handler = ShutdownHandler()
    shutdown_handler.register()
    return config, shutdown_handler
