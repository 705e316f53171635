"""Shared request data types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OutboundRequest:
    """Prepared data for an upstream request."""

    method: str
    url: str
    headers: list[tuple[str, str]]
    body: bytes
