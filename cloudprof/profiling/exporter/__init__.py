import typing


class ExportError(Exception):
    pass


class UploadError(ExportError):
    """The upload of a collected profile failed."""


class ProfilerAPIError(ExportError):
    """A request to the profiler API failed.

    :param status: The HTTP status of the response, or ``None`` if no response was received.
    """

    def __init__(self, message: str, status: typing.Optional[int] = None) -> None:
        super(ProfilerAPIError, self).__init__(message)
        self.status = status


class BackoffResponseError(ProfilerAPIError):
    """The profiler API asked to wait ``backoff_millis`` before the next request."""

    def __init__(self, message: str, backoff_millis: float, status: typing.Optional[int] = None) -> None:
        super(BackoffResponseError, self).__init__(message, status)
        self.backoff_millis = backoff_millis


class InvalidProfileError(ProfilerAPIError, ValueError):
    """The profiler API returned a profile that does not have the expected shape."""
