import logging

import pytest

from trading_insights.core.log.context import ContextFilter
from trading_insights.core.logger import get_logger, log_context, timeit


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, message, (), None)


def test_scope_binds_and_restores_context() -> None:
    log_context.clear()
    log_context.bind(backend="memory")

    with log_context.scope(query_id=3, skipped=None):
        assert log_context.as_dict() == {"backend": "memory", "query_id": 3}

    assert log_context.as_dict() == {"backend": "memory"}
    log_context.unbind("backend")
    assert log_context.as_dict() == {}


def test_filter_renders_context_prefix() -> None:
    log_context.clear()
    record = _record()

    with log_context.scope(query_id=7):
        assert ContextFilter().filter(record) is True

    assert record.context == "query_id=7 "


def test_timeit_logs_throughput(caplog) -> None:
    logger = get_logger("trading_insights.tests")

    with caplog.at_level(logging.INFO, logger="trading_insights.tests"):
        with timeit("Scoring", logger=logger, unit="queries") as timer:
            timer.add(4)

    assert any("Scoring completed in" in message and "4 queries" in message for message in caplog.messages)


def test_timeit_logs_failures(caplog) -> None:
    logger = get_logger("trading_insights.tests")

    with caplog.at_level(logging.INFO, logger="trading_insights.tests"):
        with pytest.raises(RuntimeError):
            with timeit("Seeding", logger=logger, total=10):
                raise RuntimeError("boom")

    assert any(message.startswith("Seeding failed after") for message in caplog.messages)
