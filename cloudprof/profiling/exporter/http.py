# -*- encoding: utf-8 -*-
import base64
import gzip
from http import client as http_client
import io
import json
import typing

from cloudprof._version import __version__
from cloudprof.internal import http
from cloudprof.profiling import backoff
from cloudprof.profiling import exporter
from cloudprof.profiling.exporter import _profile_proto as pprof_pb2
from cloudprof.profiling.request import Deployment
from cloudprof.profiling.request import RequestProfile


USER_AGENT = "cloudprof-python/%s" % __version__

HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
}


def profile_bytes(profile):
    # type: (pprof_pb2.Profile) -> str
    """Encode a profile the way the profiler API expects it: gzipped protobuf, in base64."""
    buf = io.BytesIO()
    with gzip.GzipFile(fileobj=buf, mode="wb") as gz:
        gz.write(profile.SerializeToString())
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _is_error_status(status):
    # type: (int) -> bool
    return status < 200 or status >= 300


def _error_message(reason, body):
    # type: (str, typing.Any) -> str
    if isinstance(body, dict) and body.get("message") and isinstance(body["message"], str):
        return body["message"]
    return reason


def response_to_profile_or_error(status, reason, body):
    # type: (int, str, typing.Any) -> RequestProfile
    """Return the profile of a create profile response.

    :param status: The HTTP status of the response.
    :param reason: The HTTP reason phrase of the response.
    :param body: The decoded JSON body of the response, or ``None``.
    :raises BackoffResponseError: if the API failed and asked to wait before the next request.
    :raises ProfilerAPIError: if the API failed.
    :raises InvalidProfileError: if the API succeeded but did not return a valid profile.
    """
    if _is_error_status(status):
        message = _error_message(reason, body)
        backoff_millis = backoff.get_server_response_backoff(body)
        if backoff_millis is None:
            backoff_millis = backoff.parse_backoff_duration(message)
        if backoff_millis is not None:
            raise exporter.BackoffResponseError(message, backoff_millis, status)
        raise exporter.ProfilerAPIError(message, status)

    return RequestProfile.from_json(body)


class ProfilerAPIClient(object):
    """Client of the profiler API.

    :param base_url: The base URL of the API, e.g. ``https://cloudprofiler.googleapis.com/v2``.
    :param create_timeout: Timeout in seconds of the create profile requests. The API holds them until a profile is
        due, so this must be longer than the profiling period.
    :param api_timeout: Timeout in seconds of the other requests.
    :param headers: Extra headers sent with every request, e.g. credentials.
    """

    def __init__(
        self,
        base_url,  # type: str
        create_timeout=60 * 60.0,  # type: float
        api_timeout=60.0,  # type: float
        headers=None,  # type: typing.Optional[typing.Dict[str, str]]
    ):
        # type: (...) -> None
        self.base_url = base_url
        self.create_timeout = create_timeout
        self.api_timeout = api_timeout
        self.headers = dict(HEADERS)
        if headers:
            self.headers.update(headers)

    def __repr__(self):
        return "%s(base_url=%r, create_timeout=%r, api_timeout=%r)" % (
            self.__class__.__name__,
            self.base_url,
            self.create_timeout,
            self.api_timeout,
        )

    def _request(self, method, path, payload, timeout):
        # type: (str, str, typing.Dict[str, typing.Any], float) -> typing.Tuple[int, str, typing.Any]
        client = http.get_connection(self.base_url, timeout, self.headers)
        try:
            client.request(method, path, body=json.dumps(payload).encode("utf-8"))
            response = client.getresponse()
            content = response.read()  # reading is mandatory
        finally:
            client.close()

        try:
            body = json.loads(content) if content else None
        except ValueError:
            body = None
        return response.status, response.reason, body

    def create_profile(self, deployment, profile_types):
        # type: (Deployment, typing.List[str]) -> RequestProfile
        """Ask the API for the next profile to collect.

        The request is held by the API until a profile of one of ``profile_types`` is due.

        :raises ProfilerAPIError: if the request failed or was rejected.
        """
        payload = {"deployment": deployment.to_json(), "profileType": profile_types}
        try:
            status, reason, body = self._request("POST", "profiles", payload, self.create_timeout)
        except (http_client.HTTPException, EnvironmentError) as e:
            raise exporter.ProfilerAPIError("Create profile request failed: %s" % e)
        return response_to_profile_or_error(status, reason, body)

    def upload_profile(self, prof):
        # type: (RequestProfile) -> None
        """Send a collected profile to the API.

        :raises UploadError: if the request failed or was rejected.
        """
        try:
            status, reason, _ = self._request("PATCH", prof.name, prof.to_json(), self.api_timeout)
        except (http_client.HTTPException, EnvironmentError) as e:
            raise exporter.UploadError("HTTP upload request failed: %s" % e)

        if _is_error_status(status):
            raise exporter.UploadError(reason or str(status))
