"""Header filtering for upstream requests and client responses.

Filtering is best-effort: a header whose value is not transmittable
text is dropped on its own instead of failing the whole request.
"""

from collections.abc import Iterable

RawHeaders = Iterable[tuple[bytes, bytes]]

# Never forwarded upstream: "host" names this proxy, "authorization"
# carries the proxy's own key.
EXCLUDED_REQUEST_HEADERS = frozenset({b"host", b"authorization"})

# The body is buffered before sending, so the client frames it anew.
FRAMING_HEADERS = frozenset({b"content-length", b"transfer-encoding"})


def is_text_value(value: bytes) -> bool:
    """True if every byte is visible ASCII or a horizontal tab."""
    return all(32 <= byte < 127 or byte == 9 for byte in value)


class HeaderFilter:
    """Copy header lists, skipping excluded names and non-text values."""

    def __init__(
        self, excluded: Iterable[bytes] = EXCLUDED_REQUEST_HEADERS | FRAMING_HEADERS
    ) -> None:
        self.excluded = frozenset(name.lower() for name in excluded)

    def request_headers(self, raw: RawHeaders) -> list[tuple[str, str]]:
        """Inbound headers to send upstream, order and repeats preserved."""
        upstream: list[tuple[str, str]] = []
        for name, value in raw:
            if name.lower() in self.excluded or not is_text_value(value):
                continue
            upstream.append((name.decode("latin-1"), value.decode("ascii")))
        return upstream

    def response_headers(self, raw: RawHeaders) -> list[tuple[bytes, bytes]]:
        """Upstream headers to relay to the client, as ASGI raw headers."""
        return [(name.lower(), value) for name, value in raw if is_text_value(value)]
