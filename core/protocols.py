"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, ConsoleLogger)."""

    def log_forwarded(self, method: str, path: str, status: int) -> None: ...
    def log_rejected(self, method: str, path: str, status: int, reason: str) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
    def log_warning(self, message: str) -> None: ...


class KeySource(Protocol):
    """Protocol for API key sources (env list, flat file, SQLite table)."""

    def resolve_keys(self) -> list[str]: ...
    def describe(self) -> str: ...
