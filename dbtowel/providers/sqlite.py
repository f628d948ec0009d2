# dbtowel — convenience facade over DB-API database drivers
# Copyright (C) 2024-2026 Dr Horst Herb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""SQLite provider, built on the standard library ``sqlite3`` module.

Connections run in autocommit mode; :meth:`SQLiteConnection.begin` issues an
explicit ``BEGIN`` so that ``commit()`` has a well-defined scope.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from dbtowel.providers.base import CommandType, Connection, ProviderFactory
from dbtowel.providers.dbapi import DBAPICommand, DBAPIConnection

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def resolve_path(path: str | Path) -> str:
    """Expand ``~`` and create parent directories; ``":memory:"`` passes through.

    Raises:
        sqlite3.OperationalError: The parent directory cannot be created.
    """
    if str(path) == MEMORY:
        return MEMORY
    resolved = Path(path).expanduser()
    try:
        resolved.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise sqlite3.OperationalError(
            f"unable to create directory {resolved.parent}: {exc}"
        ) from exc
    return str(resolved)


def pragmas(wal_mode: bool, foreign_keys: bool, path: str) -> list[str]:
    """PRAGMA statements to run on a freshly opened connection."""
    statements = []
    if wal_mode and path != MEMORY:
        statements.append("PRAGMA journal_mode=WAL")
    if foreign_keys:
        statements.append("PRAGMA foreign_keys=ON")
    return statements


class SQLiteConnection(DBAPIConnection):
    """SQLite session.

    Args:
        connection_string: File path (``":memory:"`` for in-memory).
        wal_mode: Enable WAL journal mode for better concurrent access.
        foreign_keys: Enforce foreign key constraints.
    """

    driver = sqlite3

    def __init__(
        self,
        connection_string: str,
        *,
        wal_mode: bool = True,
        foreign_keys: bool = True,
    ) -> None:
        super().__init__(connection_string)
        self.wal_mode = wal_mode
        self.foreign_keys = foreign_keys

    def _connect(self) -> sqlite3.Connection:
        path = resolve_path(self.connection_string)
        conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        try:
            for statement in pragmas(self.wal_mode, self.foreign_keys, path):
                conn.execute(statement)
        except BaseException:
            conn.close()
            raise
        logger.debug("SQLite connection opened: %s", path)
        return conn

    def _begin(self, raw: sqlite3.Connection) -> None:
        raw.execute("BEGIN")


class SQLiteProvider(ProviderFactory):
    """Provider for SQLite databases.

    Options (``wal_mode``, ``foreign_keys``) are forwarded to every
    :class:`SQLiteConnection`.
    """

    PROVIDER_NAME = "sqlite"
    error_types = (sqlite3.Error,)

    def __init__(
        self,
        connection_string: str,
        *,
        wal_mode: bool = True,
        foreign_keys: bool = True,
    ) -> None:
        super().__init__(connection_string, wal_mode=wal_mode, foreign_keys=foreign_keys)

    def create_connection(self) -> SQLiteConnection:
        return SQLiteConnection(self.connection_string, **self.options)

    def create_command(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> DBAPICommand:
        return DBAPICommand(text, connection, command_type)  # type: ignore[arg-type]
