import http.client as httplib
import typing as t
from urllib import parse


class HTTPConnectionMixin:
    """
    Mixin for HTTP(S) connections for performing internal adjustments.

    Currently this mixin performs the following adjustments:
    - insert a base path to requested URLs
    - set the default JSON and user agent headers
    """

    _base_path: str = "/"
    _default_headers: t.Dict[str, str] = {}

    def putrequest(self, method: str, url: str, skip_host: bool = False, skip_accept_encoding: bool = False) -> None:
        url = parse.urljoin(self._base_path, url)
        return super().putrequest(  # type: ignore[misc]
            method, url, skip_host=skip_host, skip_accept_encoding=skip_accept_encoding
        )

    @classmethod
    def with_base_path(cls, *args, **kwargs):
        base_path = kwargs.pop("base_path", None) or "/"
        default_headers = kwargs.pop("default_headers", None)
        obj = cls(*args, **kwargs)
        # urljoin drops the last path segment of the base unless it ends with a slash
        obj._base_path = base_path if base_path.endswith("/") else base_path + "/"
        if default_headers:
            obj._default_headers = dict(default_headers)
        return obj

    def request(self, method, url, body=None, headers={}, *, encode_chunked=False):
        _headers = dict(self._default_headers)
        _headers.update(headers)

        return super().request(method, url, body=body, headers=_headers, encode_chunked=encode_chunked)


class HTTPConnection(HTTPConnectionMixin, httplib.HTTPConnection):
    """
    httplib.HTTPConnection wrapper to add a base path to requested URLs
    """


class HTTPSConnection(HTTPConnectionMixin, httplib.HTTPSConnection):
    """
    httplib.HTTPSConnection wrapper to add a base path to requested URLs
    """


def get_connection(
    url: str,
    timeout: t.Optional[float] = None,
    headers: t.Optional[t.Dict[str, str]] = None,
) -> t.Union[HTTPConnection, HTTPSConnection]:
    """Return an HTTP connection to the given URL, keeping its path as the base path of every request."""
    parsed = parse.urlparse(url)
    hostname = parsed.hostname or ""
    path = parsed.path or "/"

    if parsed.scheme == "https":
        return HTTPSConnection.with_base_path(
            hostname, parsed.port, timeout=timeout, base_path=path, default_headers=headers
        )
    if parsed.scheme == "http":
        return HTTPConnection.with_base_path(
            hostname, parsed.port, timeout=timeout, base_path=path, default_headers=headers
        )
    raise ValueError("Unsupported protocol '%s' in URL '%s'" % (parsed.scheme, url))
