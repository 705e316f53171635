"""API key sources: inline list, flat file, SQLite table.

Exactly one source is selected at startup by precedence
(SQLite > file > inline list); request handling only ever sees the
resolved keys.
"""

import re
import sqlite3
from contextlib import closing
from pathlib import Path

from core.exceptions import KeySourceError
from core.protocols import KeySource

_FILE_SEPARATORS = re.compile(r"[,\r\n]")


def split_keys(text: str, separators: re.Pattern[str] | str = ",") -> list[str]:
    """Split a delimited string into trimmed, non-empty keys."""
    parts = re.split(separators, text) if isinstance(separators, str) else separators.split(text)
    return [part.strip() for part in parts if part.strip()]


class InlineKeySource:
    """Keys given directly, either as a comma-separated string or a list."""

    def __init__(self, keys: str | list[str] | None) -> None:
        if keys is None:
            self._keys: list[str] = []
        elif isinstance(keys, str):
            self._keys = split_keys(keys)
        else:
            self._keys = [key.strip() for key in keys if key.strip()]

    def resolve_keys(self) -> list[str]:
        return list(self._keys)

    def describe(self) -> str:
        return "inline"


class FileKeySource:
    """Keys separated by commas or newlines in a text file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def resolve_keys(self) -> list[str]:
        try:
            content = self.path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise KeySourceError(
                f"failed to read API keys file '{self.path}': {e}", source=self.describe()
            ) from e
        return split_keys(content, _FILE_SEPARATORS)

    def describe(self) -> str:
        return f"file:{self.path}"


class SqliteKeySource:
    """Keys stored in the ``key`` column of an ``api_keys`` table."""

    QUERY = "SELECT key FROM api_keys"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def resolve_keys(self) -> list[str]:
        try:
            with closing(sqlite3.connect(self.path)) as conn:
                rows = conn.execute(self.QUERY).fetchall()
        except sqlite3.Error as e:
            raise KeySourceError(
                f"failed to load API keys from sqlite database '{self.path}': {e}",
                source=self.describe(),
            ) from e

        keys = []
        for (value,) in rows:
            if not isinstance(value, str):
                raise KeySourceError(
                    f"non-text key {value!r} in api_keys table of '{self.path}'",
                    source=self.describe(),
                )
            keys.append(value)
        return keys

    def describe(self) -> str:
        return f"sqlite:{self.path}"


def select_key_source(
    sqlite_path: str | None = None,
    file_path: str | None = None,
    inline: str | list[str] | None = None,
) -> KeySource:
    """Pick the highest-precedence configured source."""
    if sqlite_path:
        return SqliteKeySource(sqlite_path)
    if file_path:
        return FileKeySource(file_path)
    return InlineKeySource(inline)
