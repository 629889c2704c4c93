from signal import SIGINT
from signal import SIGTERM
from unittest import mock

import pytest

from lib.handlers import ShutdownHandler
from lib.handlers import register_shutdown


def test_shutdown_handler_records_signal():
    handler = ShutdownHandler()
    assert handler.shut_down() is False

    handler._signal_handler(SIGTERM, None)

    assert handler.shut_down() is True


def test_shutdown_handler_second_signal_aborts():
    handler = ShutdownHandler()
    handler._signal_handler(SIGINT, None)

    with pytest.raises(KeyboardInterrupt):
        handler._signal_handler(SIGINT, None)


def test_shutdown_handler_register(mocker):
    signal_mock = mocker.patch("lib.handlers.signal")
    handler = ShutdownHandler()

    handler.register()

    signal_mock.assert_has_calls(
        [mock.call(SIGTERM, handler._signal_handler), mock.call(SIGINT, handler._signal_handler)]
    )


def test_register_shutdown(mocker):
    register_mock = mocker.patch("lib.handlers.register")
    function = mock.Mock()

    register_shutdown(function, "Pushing metrics")
    register_mock.call_args.args[0]()

    function.assert_called_once_with()


def test_register_shutdown_logs_failures(mocker):
    register_mock = mocker.patch("lib.handlers.register")
    logger_mock = mocker.patch("lib.handlers.logger")

    register_shutdown(mock.Mock(side_effect=OSError("gateway unreachable")), "Pushing metrics")
    register_mock.call_args.args[0]()

    logger_mock.exception.assert_called_once_with("%s failed", "Pushing metrics")
