import pytest

from cloudprof.internal.utils.time import StopWatch
from cloudprof.internal.utils.time import format_millis
from cloudprof.internal.utils.time import parse_duration


@pytest.mark.parametrize(
    "value,expected",
    [
        ("10s", 10000.0),
        ("2.5s", 2500.0),
        ("1m2s", 62000.0),
        ("1h2.5s", 3602500.0),
        ("1h1m2.5s", 3662500.0),
        ("500ms", 500.0),
        ("1000us", 1.0),
        ("0s", 0.0),
        (".5s", 500.0),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", [None, "", "10", "s", "1x", "1h 2s", " 1s", "1s ", "1.2.3s", "abc"])
def test_parse_duration_invalid(value):
    assert parse_duration(value) is None


def test_format_millis():
    assert format_millis(62500) == "1 minute and 2.5 seconds"
    assert format_millis(1000) == "1 second"


def test_stopwatch():
    with StopWatch() as sw:
        pass
    elapsed = sw.elapsed()
    assert elapsed >= 0
    assert sw.elapsed() == elapsed


def test_stopwatch_not_started():
    with pytest.raises(RuntimeError):
        StopWatch().elapsed()
    with pytest.raises(RuntimeError):
        StopWatch().stop()
