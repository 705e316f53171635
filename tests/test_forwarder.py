"""Tests for outbound request construction and sending."""

import httpx
import pytest

from core.exceptions import UpstreamConnectionError
from core.request_types import OutboundRequest
from services.forwarder import (
    RequestForwarder,
    build_target_url,
    has_dot_segment,
    raw_path_suffix,
    resolve_method,
)

from conftest import MockUpstream


class TestResolveMethod:
    @pytest.mark.parametrize("method", ["GET", "POST", "DELETE", "PROPFIND", "M-SEARCH"])
    def test_valid_tokens_pass_through(self, method):
        assert resolve_method(method) == method

    @pytest.mark.parametrize("method", ["", "BAD METHOD", "GET\r\n", "(GET)", "MÉTHODE"])
    def test_invalid_tokens_are_unrepresentable(self, method):
        assert resolve_method(method) is None


class TestBuildTargetUrl:
    def test_joins_base_prefix_and_suffix(self):
        assert build_target_url("http://127.0.0.1:11434", "api/chat") == (
            "http://127.0.0.1:11434/v1/api/chat"
        )

    def test_trailing_slash_on_base_is_ignored(self):
        assert build_target_url("http://ollama/", "models") == "http://ollama/v1/models"

    def test_empty_suffix(self):
        assert build_target_url("http://ollama", "") == "http://ollama/v1/"

    def test_query_is_appended(self):
        assert build_target_url("http://ollama", "models", "a=1&b=2") == (
            "http://ollama/v1/models?a=1&b=2"
        )


class TestRawPathSuffix:
    def test_strips_prefix_and_keeps_escapes(self):
        assert raw_path_suffix(b"/v1/chat%2Fcompletions") == "chat%2Fcompletions"

    def test_drops_query(self):
        assert raw_path_suffix(b"/v1/models?a=1") == "models"

    def test_unprefixed_path(self):
        assert raw_path_suffix(b"/v1%2Fmodels") is None


class TestDotSegments:
    @pytest.mark.parametrize("path", ["../api/tags", "%2E%2E/api", "a/%2e/b", "models/..", "."])
    def test_detected(self, path):
        assert has_dot_segment(path)

    @pytest.mark.parametrize("path", ["models", "a..b/c", ".hidden", "", "v1/.../x"])
    def test_ordinary_segments(self, path):
        assert not has_dot_segment(path)


class TestBuild:
    def test_builds_outbound_request(self, make_state, logger):
        forwarder = RequestForwarder(make_state(), logger)
        outbound = forwarder.build(
            "POST",
            "generate",
            [(b"host", b"proxy"), (b"authorization", b"Bearer secret"), (b"x-a", b"1")],
            b'{"prompt":"hi"}',
        )

        assert outbound == OutboundRequest(
            method="POST",
            url="http://upstream.test/v1/generate",
            headers=[("x-a", "1")],
            body=b'{"prompt":"hi"}',
        )
        assert logger.warnings == []

    def test_unrepresentable_method_falls_back_to_get(self, make_state, logger):
        forwarder = RequestForwarder(make_state(), logger)
        outbound = forwarder.build("NOT VALID", "models", [], b"")

        assert outbound.method == "GET"
        assert len(logger.warnings) == 1


@pytest.mark.anyio
class TestSend:
    async def test_returns_unread_upstream_response(self, make_state, logger, upstream):
        forwarder = RequestForwarder(make_state(), logger)
        outbound = OutboundRequest("POST", "http://upstream.test/v1/generate", [("x-a", "1")], b"hi")

        response = await forwarder.send(outbound)
        try:
            assert response.status_code == 200
            assert b"".join([chunk async for chunk in response.aiter_raw()]) == b"ok"
        finally:
            await response.aclose()

        sent = upstream.requests[0]
        assert sent.method == "POST"
        assert sent.content == b"hi"
        assert sent.headers["x-a"] == "1"

    async def test_client_default_headers_are_not_added(self, make_state, logger, upstream):
        forwarder = RequestForwarder(make_state(), logger)
        response = await forwarder.send(OutboundRequest("GET", "http://upstream.test/v1/", [], b""))
        await response.aclose()

        sent = upstream.requests[0].headers
        assert "user-agent" not in sent
        assert "accept-encoding" not in sent
        assert "content-length" not in sent

    async def test_transport_error_becomes_connection_error(self, make_state, logger):
        mock = MockUpstream(error=httpx.ConnectError("refused"))
        forwarder = RequestForwarder(make_state(mock=mock), logger)
        outbound = OutboundRequest("GET", "http://upstream.test/v1/models", [], b"")

        with pytest.raises(UpstreamConnectionError) as exc_info:
            await forwarder.send(outbound)

        assert exc_info.value.url == "http://upstream.test/v1/models"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_upstream_error_status_is_not_a_failure(self, make_state, logger):
        mock = MockUpstream(status_code=500, body=b"boom")
        forwarder = RequestForwarder(make_state(mock=mock), logger)

        response = await forwarder.send(OutboundRequest("GET", "http://upstream.test/v1/x", [], b""))
        await response.aclose()

        assert response.status_code == 500
