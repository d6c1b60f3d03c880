import logging

import pytest

from ofproviders.launchdarkly.logger import Logger, NoOpLogger


@pytest.mark.parametrize("method", ["debug", "info", "error", "warn"])
def test_noop_logger_writes_nothing(method, capsys, caplog):
    caplog.set_level(logging.DEBUG)
    logger = NoOpLogger()
    result = getattr(logger, method)("mapping %r context kind", "user")
    captured = capsys.readouterr()
    assert result is None
    assert captured.out == ""
    assert captured.err == ""
    assert caplog.records == []


@pytest.mark.parametrize("args", [(), ("user",), ("a", 1, 2.5, None)])
@pytest.mark.parametrize("method", ["debug", "info", "error", "warn"])
def test_noop_logger_accepts_any_number_of_arguments(method, args, capsys, caplog):
    caplog.set_level(logging.DEBUG)
    logger = NoOpLogger()
    result = getattr(logger, method)("message %s %s", *args)
    captured = capsys.readouterr()
    assert result is None
    assert captured.out + captured.err == ""
    assert caplog.records == []


def test_noop_logger_used_through_logger_protocol(capsys):
    def report(logger: Logger) -> list:
        return [
            logger.debug("debug %s", 1),
            logger.error("error %s", 2),
            logger.warn("warn %s", 3),
        ]

    logger = NoOpLogger()
    assert isinstance(logger, Logger)
    assert report(logger) == [None, None, None]
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""