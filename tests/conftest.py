import logging

import pytest

from cloudprof.internal import logger


@pytest.fixture(autouse=True)
def no_log_rate_limit(monkeypatch):
    # Every test expects all of its log records
    monkeypatch.setattr(logger, "_rate_limit", 0)
    yield
    logger._buckets.clear()


@pytest.fixture
def debug_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="cloudprof")
    return caplog
