"""FastAPI route handlers."""

from urllib.parse import quote

from fastapi import HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.requests import ClientDisconnect
from starlette.routing import request_response
from starlette.types import Receive, Scope, Send

from core.exceptions import BodyReadError, RequestTooLarge, UpstreamConnectionError
from core.protocols import RequestLogger
from services.forwarder import has_dot_segment, raw_path_suffix

MAX_BODY_SIZE = 8 * 1024 * 1024  # 8MB


async def read_body(request: Request, limit: int = MAX_BODY_SIZE) -> bytes:
    """Buffer the request body, failing as soon as it exceeds ``limit``."""
    body = bytearray()
    try:
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > limit:
                raise RequestTooLarge(f"request body exceeds {limit} bytes")
    except ClientDisconnect as e:
        raise BodyReadError("client disconnected while sending body") from e
    return bytes(body)


def path_suffix(request: Request) -> str:
    """The part of the inbound path after ``/v1/``, still percent-encoded."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        suffix = raw_path_suffix(raw_path)
        if suffix is not None:
            return suffix
    return quote(request.path_params.get("path", ""), safe="/")


async def handle_proxy(request: Request, logger: RequestLogger) -> Response:
    """Handle any method on /v1/{path}: authorize, forward, relay."""
    method = request.method
    path = path_suffix(request)
    route = f"{method} {request.url.path}"

    # A dot segment would resolve to a route outside /v1/ upstream.
    if has_dot_segment(path):
        raise HTTPException(status_code=404)

    if not request.app.state.auth_gate.authorize(request.headers):
        logger.log_rejected(method, request.url.path, 401, "missing or invalid API key")
        return PlainTextResponse("Unauthorized", status_code=401)

    try:
        body = await read_body(request)
    except (RequestTooLarge, BodyReadError) as e:
        logger.log_rejected(method, request.url.path, 400, str(e))
        return PlainTextResponse("Failed to read body", status_code=400)

    forwarder = request.app.state.forwarder
    mapper = request.app.state.response_mapper

    outbound = forwarder.build(method, path, request.headers.raw, body, request.url.query)
    try:
        upstream = await forwarder.send(outbound)
    except UpstreamConnectionError as e:
        logger.log_error(route, 502, str(e))
        return mapper.bad_gateway()

    logger.log_forwarded(method, request.url.path, upstream.status_code)
    return await mapper.relay(upstream, logger, route)


class ProxyEndpoint:
    """ASGI endpoint for the /v1 route.

    Starlette limits plain function endpoints to GET and HEAD when no
    methods are given; an ASGI app instance is dispatched for every verb.
    """

    def __init__(self, logger: RequestLogger) -> None:
        self._logger = logger
        self._app = request_response(self.handle)

    async def handle(self, request: Request) -> Response:
        return await handle_proxy(request, self._logger)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._app(scope, receive, send)
