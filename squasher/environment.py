from enum import Enum
from enum import auto

__all__ = ("RuntimeEnvironment",)


class RuntimeEnvironment(Enum):
    JOB = auto()
    COMMAND = auto()
    TEST = auto()

    @property
    def logging_enabled(self):
        return self != self.TEST

    @property
    def metrics_pushgateway_enabled(self):
        return self == self.JOB
