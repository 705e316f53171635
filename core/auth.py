"""Bearer API key authorization for incoming requests."""

import hmac
from collections.abc import Iterable, Mapping

from core.headers import is_text_value

BEARER_PREFIX = "Bearer "


def extract_bearer_key(headers: Mapping[str, str]) -> str | None:
    """Return the key from ``authorization: Bearer <key>``, if present.

    ``headers`` must look up names case-insensitively (Starlette's
    ``Headers`` does). The prefix itself is case-sensitive.
    """
    value = headers.get("authorization")
    if value is None or not value.startswith(BEARER_PREFIX):
        return None
    if not value.isascii() or not is_text_value(value.encode("ascii")):
        return None
    return value[len(BEARER_PREFIX):]


def is_valid_key(candidate: str, keys: Iterable[str]) -> bool:
    """Exact, case-sensitive membership test in constant time per key."""
    encoded = candidate.encode()
    found = False
    for key in keys:
        if hmac.compare_digest(encoded, key.encode()):
            found = True
    return found


class AuthGate:
    """Validate bearer keys against the configured key set."""

    def __init__(self, keys: Iterable[str]) -> None:
        self._keys = tuple(keys)

    def authorize(self, headers: Mapping[str, str]) -> bool:
        if not self._keys:
            return False
        candidate = extract_bearer_key(headers)
        if candidate is None:
            return False
        return is_valid_key(candidate, self._keys)
