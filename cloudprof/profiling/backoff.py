"""Extraction of the delays requested by the profiler API.

The API asks the agent to slow down either with a structured ``RetryInfo`` detail in the error body, e.g.::

    {"error": {"details": [{"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "50s"}]}}

or, on older paths, with a freeform message ending in ``action throttled, backoff for 1h2.5s``.
"""
import re
import typing

from cloudprof.internal.utils.time import parse_duration


BACKOFF_MESSAGE_RE = re.compile(r"action throttled, backoff for ((?:([0-9]+)h)?(?:([0-9]+)m)?([0-9.]+)s)\Z")


def _positive(millis):
    # type: (typing.Optional[float]) -> typing.Optional[float]
    if millis is not None and millis > 0:
        return millis
    return None


def get_server_response_backoff(body):
    # type: (typing.Any) -> typing.Optional[float]
    """Return the backoff in milliseconds found in the ``error.details`` of a response body, if any."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    details = error.get("details")
    if not isinstance(details, list):
        return None
    for item in details:
        if isinstance(item, dict) and isinstance(item.get("retryDelay"), str):
            backoff_millis = _positive(parse_duration(item["retryDelay"]))
            if backoff_millis is not None:
                return backoff_millis
    return None


def parse_backoff_duration(message):
    # type: (typing.Optional[str]) -> typing.Optional[float]
    """Return the backoff in milliseconds requested by a throttling message, if any.

    >>> parse_backoff_duration("action throttled, backoff for 1h1m2.5s")
    3662500.0
    """
    if not message:
        return None
    match = BACKOFF_MESSAGE_RE.search(message)
    if match is None:
        return None
    return _positive(parse_duration(match.group(1)))
