import re
import time as builtin_time
from types import TracebackType
from typing import Optional
from typing import Type  # noqa:F401

import humanfriendly


class Time:
    """
    References to the standard Python time functions that won't be clobbered by `freezegun`.

    `freezegun`_ scans all loaded modules to check for imported functions from the `time` module, but it does not look
    inside classes or other objects, so these references are safe to use in the agent.

    .. _freezegun: https://github.com/spulec/freezegun/blob/1.5.3/freezegun/api.py#L817
    """

    time = builtin_time.time
    time_ns = builtin_time.time_ns
    monotonic = builtin_time.monotonic
    monotonic_ns = builtin_time.monotonic_ns


_DURATION_PART = re.compile(r"([0-9]*\.?[0-9]+)(ms|us|µs|ns|h|m|s)")

_UNIT_MILLIS = {
    "h": 60 * 60 * 1000.0,
    "m": 60 * 1000.0,
    "s": 1000.0,
    "ms": 1.0,
    "us": 1e-3,
    "µs": 1e-3,
    "ns": 1e-6,
}


def parse_duration(value: Optional[str]) -> Optional[float]:
    """Parse a duration string into milliseconds.

    A duration is a sequence of decimal numbers, each with a unit suffix and no separator, e.g. ``"10s"``,
    ``"2.5s"``, ``"1m2s"`` or ``"1h2.5s"``. Valid units are ``h``, ``m``, ``s``, ``ms``, ``us`` (or ``µs``) and
    ``ns``.

    :param value: The duration string to parse.
    :return: The duration in milliseconds, or ``None`` if ``value`` is not a valid duration.
    """
    if not value:
        return None

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            return None
        total += float(match.group(1)) * _UNIT_MILLIS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(value):
        return None
    return total


def format_millis(millis: float) -> str:
    """Format a number of milliseconds for humans, e.g. ``"1 minute and 2.5 seconds"``."""
    return humanfriendly.format_timespan(millis / 1000.0)


class StopWatch(object):
    """A simple timer/stopwatch helper class.

    Not thread-safe (when a single watch is mutated by multiple threads at
    the same time). Thread-safe when used by a single thread (not shared) or
    when operations are performed in a thread-safe manner on these objects by
    wrapping those operations with locks.
    """

    def __init__(self) -> None:
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    def start(self):
        # type: () -> StopWatch
        """Starts the watch."""
        self._started_at = Time.monotonic()
        return self

    def elapsed(self) -> float:
        """Get how many seconds have elapsed.

        :return: Number of seconds elapsed
        :rtype: float
        """
        if self._started_at is None:
            raise RuntimeError("Can not get the elapsed time of a stopwatch if it has not been started/stopped")
        if self._stopped_at is None:
            now = Time.monotonic()
        else:
            now = self._stopped_at
        return now - self._started_at

    def __enter__(self):
        # type: () -> StopWatch
        """Starts the watch."""
        self.start()
        return self

    def __exit__(
        self, tp: Optional[Type[BaseException]], value: Optional[BaseException], traceback: Optional[TracebackType]
    ) -> None:
        """Stops the watch."""
        self.stop()

    def stop(self):
        # type: () -> StopWatch
        """Stops the watch."""
        if self._started_at is None:
            raise RuntimeError("Can not stop a stopwatch that has not been started")
        self._stopped_at = Time.monotonic()
        return self
