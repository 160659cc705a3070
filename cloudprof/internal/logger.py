"""
Logging utilities for internal use.
Usage:
    from cloudprof.internal.logger import get_logger
    log = get_logger(__name__)

    log.debug("Attempting to create profile.")

Every logger returned by ``get_logger`` carries a rate limiting filter: a given call site (file and line) emits at
most one record every ``GCLOUD_PROFILER_LOGGING_RATE`` seconds (60 by default, 0 disables the limit). The number of
records skipped in the meantime is appended to the next emitted record, e.g.

    WARNING Failed to create profile, waiting 1 minute to try again: HTTP 503 [4 skipped]

The agent is configured with a numeric level, kept for compatibility with the other profiling agents:
0 disables logging, 1 is error, 2 warning, 3 info and 4 debug.
"""

import collections
import logging
import os
import time
from typing import DefaultDict
from typing import Tuple


MIN_LEVEL = 0
MAX_LEVEL = 4

_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve or create a ``Logger`` instance with consistent behavior for internal use.

    Configure all loggers with a rate limiter filter to prevent excessive logging.

    """
    logger = logging.getLogger(name)
    # addFilter will only add the filter if it is not already present
    logger.addFilter(log_filter)
    logger.propagate = True
    return logger


# Class used for keeping track of a log lines current time bucket and the number of log lines skipped
class LoggingBucket:
    def __init__(self, bucket: float, skipped: int):
        self.bucket = bucket
        self.skipped = skipped

    def __repr__(self):
        return f"LoggingBucket({self.bucket}, {self.skipped})"

    def is_sampled(self, record: logging.LogRecord, rate: float) -> bool:
        """
        Determine if the log line should be sampled based on the rate limit.
        """
        current = time.monotonic()
        if current - self.bucket >= rate:
            self.bucket = current
            record.skipped = self.skipped
            self.skipped = 0
            return True
        self.skipped += 1
        return False


_MINF = float("-inf")

_buckets: DefaultDict[Tuple[str, int], LoggingBucket] = collections.defaultdict(lambda: LoggingBucket(_MINF, 0))

# DEV: `GCLOUD_PROFILER_LOGGING_RATE=0` means to disable all rate limiting
_rate_limit = int(os.getenv("GCLOUD_PROFILER_LOGGING_RATE", default=60))


def log_filter(record: logging.LogRecord) -> bool:
    """
    Function used to determine if a log record should be outputted or not (True = output, False = skip).

    Records are rate limited based on the filename and line number of the logging call.
    """
    logger = logging.getLogger(record.name)
    # If the logger is set to debug, then do not apply any limits to any log
    if not _rate_limit or logger.getEffectiveLevel() == logging.DEBUG:
        return True
    return _buckets[(record.pathname, record.lineno)].is_sampled(record, _rate_limit)


class OneLineFormatter(logging.Formatter):
    """Formatter keeping every record on a single line."""

    def format(self, record: logging.LogRecord) -> str:
        skipped = getattr(record, "skipped", 0)
        skip_str = f" [{skipped} skipped]" if skipped else ""
        message = f"{record.levelname} {super().format(record)}{skip_str}"
        return message.replace("\r\n", "\\r\\n").replace("\n", "\\n")


def level_from_number(level: int) -> int:
    """Map the agent numeric log level to a ``logging`` level, clamping out of range values."""
    return _LEVELS[min(max(level, MIN_LEVEL), MAX_LEVEL)]


def configure(level: int) -> logging.Logger:
    """Set the level of the ``cloudprof`` logger from the agent numeric log level."""
    logger = logging.getLogger("cloudprof")
    logger.setLevel(level_from_number(level))
    return logger


# setup the default formatter for all cloudprof loggers
root_logger = logging.getLogger("cloudprof")
if not root_logger.handlers:
    root_logger.addHandler(logging.StreamHandler())
    root_logger.handlers[0].setFormatter(OneLineFormatter())
root_logger.propagate = True
