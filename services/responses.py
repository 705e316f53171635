"""Map upstream responses and failures to client-facing responses."""

from collections.abc import AsyncIterator

import httpx
from fastapi import Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from core.headers import HeaderFilter
from core.protocols import RequestLogger

BAD_GATEWAY_BODY = "Upstream request failed"
FALLBACK_STATUS = 200


def resolve_status(status_code: int) -> int:
    """Pass through representable status codes, else fall back to 200."""
    if 100 <= status_code <= 999:
        return status_code
    return FALLBACK_STATUS


class ResponseMapper:
    """Relay upstream responses verbatim, or describe why there is none."""

    def __init__(self, header_filter: HeaderFilter | None = None) -> None:
        self._headers = header_filter or HeaderFilter()

    async def relay(
        self,
        upstream: httpx.Response,
        logger: RequestLogger,
        route: str,
    ) -> Response:
        """Stream the upstream body with its status and text headers.

        The body is relayed as received on the wire, without decoding any
        content-encoding, so the relayed headers stay accurate.

        Header values are already filtered to ASCII text, so building the
        response does not fail on real upstream input. The 500 branch is a
        last-resort guard for a header filter that raises.
        """
        try:
            response = StreamingResponse(
                self._relay_body(upstream, logger, route),
                status_code=resolve_status(upstream.status_code),
                background=BackgroundTask(upstream.aclose),
            )
            response.raw_headers = self._headers.response_headers(upstream.headers.raw)
        except (TypeError, ValueError) as e:
            await upstream.aclose()
            logger.log_error(route, 500, f"failed to build response: {e}")
            return self.internal_error()
        return response

    async def _relay_body(
        self,
        upstream: httpx.Response,
        logger: RequestLogger,
        route: str,
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            logger.log_error(route, upstream.status_code, f"upstream body interrupted: {e}")
            raise
        finally:
            await upstream.aclose()

    @staticmethod
    def bad_gateway() -> Response:
        return PlainTextResponse(BAD_GATEWAY_BODY, status_code=502)

    @staticmethod
    def internal_error() -> Response:
        return Response(status_code=500)
