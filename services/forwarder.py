"""Build and send the upstream request for an authorized inbound request."""

import re
from urllib.parse import unquote

import httpx

from core.exceptions import UpstreamConnectionError
from core.headers import HeaderFilter, RawHeaders
from core.protocols import RequestLogger
from core.request_types import OutboundRequest
from core.state import ProxyState

UPSTREAM_PREFIX = "/v1/"
FALLBACK_METHOD = "GET"

# RFC 9110 token characters.
_METHOD_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def resolve_method(method: str) -> str | None:
    """Return ``method`` if it is a valid HTTP token, else ``None``."""
    if _METHOD_TOKEN.fullmatch(method):
        return method
    return None


def build_target_url(upstream_url: str, path: str, query: str = "") -> str:
    """``<upstream>/v1/<path>``, with the inbound query string if any."""
    url = f"{upstream_url.rstrip('/')}{UPSTREAM_PREFIX}{path}"
    if query:
        url = f"{url}?{query}"
    return url


def raw_path_suffix(raw_path: bytes) -> str | None:
    """Suffix after ``/v1/`` of an ASGI ``raw_path``, or ``None`` if unprefixed.

    Percent-escapes are kept, so an encoded ``?`` or ``/`` stays part of
    the path segment it was sent in.
    """
    path = raw_path.split(b"?", 1)[0].decode("latin-1")
    if not path.startswith(UPSTREAM_PREFIX):
        return None
    return path[len(UPSTREAM_PREFIX):]


def has_dot_segment(path: str) -> bool:
    """True if any segment is ``.`` or ``..``, percent-encoded or not."""
    return any(unquote(segment) in (".", "..") for segment in path.split("/"))


class RequestForwarder:
    """Forward requests to the upstream using the shared pooled client."""

    def __init__(
        self,
        state: ProxyState,
        logger: RequestLogger,
        header_filter: HeaderFilter | None = None,
    ) -> None:
        self._state = state
        self._logger = logger
        self._headers = header_filter or HeaderFilter()

    def build(
        self,
        method: str,
        path: str,
        headers: RawHeaders,
        body: bytes,
        query: str = "",
    ) -> OutboundRequest:
        """Construct the outbound request from the inbound parts."""
        upstream_method = resolve_method(method)
        if upstream_method is None:
            # Unusual verbs degrade to GET instead of failing the request.
            self._logger.log_warning(f"unsupported method {method!r}, forwarding as GET")
            upstream_method = FALLBACK_METHOD

        return OutboundRequest(
            method=upstream_method,
            url=build_target_url(self._state.upstream_url, path, query),
            headers=self._headers.request_headers(headers),
            body=body,
        )

    async def send(self, outbound: OutboundRequest) -> httpx.Response:
        """Send the request once and return the response with its body unread.

        The caller owns the returned response and must close it.
        """
        client = self._state.client
        try:
            request = client.build_request(
                outbound.method,
                outbound.url,
                headers=outbound.headers,
                content=outbound.body or None,
            )
            return await client.send(request, stream=True)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise UpstreamConnectionError(
                f"{type(e).__name__}: {e}", url=outbound.url
            ) from e
