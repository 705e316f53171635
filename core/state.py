"""Process-wide proxy state shared by every request handler."""

from dataclasses import dataclass

import httpx

from core.config import AppConfig

POOL_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)


@dataclass(frozen=True)
class ProxyState:
    """Resolved keys, upstream base URL and the pooled outbound client.

    Built once at startup and never mutated; the client's connection pool
    is the only shared mutable resource and is managed by httpx.
    """

    keys: tuple[str, ...]
    upstream_url: str
    client: httpx.AsyncClient

    def __post_init__(self) -> None:
        object.__setattr__(self, "upstream_url", self.upstream_url.rstrip("/"))
        object.__setattr__(self, "keys", tuple(self.keys))

    async def aclose(self) -> None:
        await self.client.aclose()


# httpx adds these to every request unless told otherwise; the upstream
# should only see what the caller sent.
_CLIENT_DEFAULT_HEADERS = ("Accept", "Accept-Encoding", "User-Agent")


def create_http_client(
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the pooled client used for all upstream calls."""
    client = httpx.AsyncClient(timeout=timeout, limits=POOL_LIMITS, transport=transport)
    for name in _CLIENT_DEFAULT_HEADERS:
        del client.headers[name]
    return client


def build_state(config: AppConfig, client: httpx.AsyncClient | None = None) -> ProxyState:
    """Combine resolved configuration with a (new or given) client."""
    return ProxyState(
        keys=tuple(config.valid_keys),
        upstream_url=config.ollama_url,
        client=client or create_http_client(config.upstream_timeout),
    )
