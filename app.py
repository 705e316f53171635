"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.handlers import ProxyEndpoint
from core.auth import AuthGate
from core.protocols import RequestLogger
from core.state import ProxyState
from services.forwarder import RequestForwarder
from services.responses import ResponseMapper


def create_app(state: ProxyState, logger: RequestLogger) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await state.aclose()

    app = FastAPI(title="Ollama Shim", version="0.1.0", lifespan=lifespan)
    app.state.proxy = state
    app.state.auth_gate = AuthGate(state.keys)
    app.state.forwarder = RequestForwarder(state, logger)
    app.state.response_mapper = ResponseMapper()

    # An ASGI endpoint with methods=None accepts every verb, custom ones included.
    app.add_route("/v1/{path:path}", ProxyEndpoint(logger), include_in_schema=False)

    return app
