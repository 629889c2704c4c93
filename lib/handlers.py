from atexit import register
from signal import SIGINT as CTRL_C_TERM
from signal import SIGTERM as OPENSHIFT_TERM
from signal import Signals
from signal import signal

from squasher.logging import get_logger

logger = get_logger(__name__)


class ShutdownHandler:
    """
    Records a termination request so the squash stops between steps instead of
    in the middle of a dump or a history rewrite.  A second signal aborts at once.
    """

    def __init__(self):
        self._shutdown = False

    def _signal_handler(self, signum, frame):  # noqa: ARG002, required by signal
        signame = Signals(signum).name
        if self._shutdown:
            logger.warning("Received %s again, aborting the current step", signame)
            raise KeyboardInterrupt
        logger.info("Gracefully Shutting Down after the current step. Received: %s", signame)
        self._shutdown = True

    def register(self):
        signal(OPENSHIFT_TERM, self._signal_handler)
        signal(CTRL_C_TERM, self._signal_handler)

    def shut_down(self):
        return self._shutdown


def register_shutdown(function, message):
    def atexit_function():
        logger.info(message)
        try:
            function()
        except Exception:
            logger.exception("%s failed", message)

    register(atexit_function)
