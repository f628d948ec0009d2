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

"""Non-blocking SQLite provider, built on ``aiosqlite``.

These handles implement only the ``*_async`` capabilities.  Calling a
blocking method (``open()``, ``execute_scalar()``, ...) raises
``sqlite3.NotSupportedError``, which the primitives normalize like any
other driver failure; use the ``*_async`` primitives with this provider.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

import aiosqlite

from dbtowel.providers.base import (
    CommandType,
    Connection,
    ConnectionState,
    ProviderFactory,
    Reader,
    Transaction,
)
from dbtowel.providers.dbapi import DBAPICommand, DBAPIConnection, DBAPIReader
from dbtowel.providers.sqlite import pragmas, resolve_path

logger = logging.getLogger(__name__)


def _blocking(name: str) -> sqlite3.NotSupportedError:
    return sqlite3.NotSupportedError(
        f"{name}() is not available on aiosqlite handles; use {name}_async()"
    )


class AsyncSQLiteTransaction(Transaction):
    def __init__(self, raw: aiosqlite.Connection) -> None:
        self._raw = raw

    def commit(self) -> None:
        raise _blocking("commit")

    def rollback(self) -> None:
        raise _blocking("rollback")

    async def commit_async(self) -> None:
        await self._raw.commit()

    async def rollback_async(self) -> None:
        await self._raw.rollback()


class AsyncSQLiteReader(DBAPIReader):
    def read(self) -> bool:
        raise _blocking("read")

    async def read_async(self) -> bool:
        return self._advance(await self._cursor.fetchone())

    def close(self) -> None:
        raise _blocking("close")

    async def close_async(self) -> None:
        await self._cursor.close()


class AsyncSQLiteConnection(DBAPIConnection):
    """SQLite session served by an ``aiosqlite`` worker thread."""

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

    def _connect(self) -> Any:
        raise _blocking("open")

    async def open_async(self) -> None:
        if self.state is ConnectionState.OPEN:
            raise sqlite3.InterfaceError("The connection is already open.")
        path = resolve_path(self.connection_string)
        conn = await aiosqlite.connect(path, isolation_level=None)
        try:
            for statement in pragmas(self.wal_mode, self.foreign_keys, path):
                await conn.execute(statement)
        except BaseException:
            await conn.close()
            raise
        self._raw = conn
        self.state = ConnectionState.OPEN
        logger.debug("aiosqlite connection opened: %s", path)

    def close(self) -> None:
        if self._raw is not None:
            raise _blocking("close")
        self.state = ConnectionState.CLOSED

    async def close_async(self) -> None:
        raw, self._raw = self._raw, None
        self.state = ConnectionState.CLOSED
        if raw is not None:
            await raw.close()
            logger.debug("aiosqlite connection closed")

    def begin(self) -> Transaction:
        raise _blocking("begin")

    async def begin_async(self) -> Transaction:
        await self.raw.execute("BEGIN")
        return AsyncSQLiteTransaction(self.raw)

    async def cursor_async(self) -> aiosqlite.Cursor:
        return await self.raw.cursor()


class AsyncSQLiteCommand(DBAPICommand):
    connection: AsyncSQLiteConnection

    def execute_non_query(self) -> int:
        raise _blocking("execute_non_query")

    def execute_scalar(self) -> Any:
        raise _blocking("execute_scalar")

    def execute_reader(self) -> Reader:
        raise _blocking("execute_reader")

    async def _run_async(self) -> aiosqlite.Cursor:
        cursor = self._prepare(await self.connection.cursor_async())
        if self.parameters:
            await cursor.execute(self.text, self.bind())
        else:
            await cursor.execute(self.text)
        return cursor

    async def execute_non_query_async(self) -> int:
        return (await self._run_async()).rowcount

    async def execute_scalar_async(self) -> Any:
        row = await (await self._run_async()).fetchone()
        if row is None:
            return None
        return row[0] if len(row) else None

    async def execute_reader_async(self) -> Reader:
        return AsyncSQLiteReader(await self._run_async(), self.connection)

    def close(self) -> None:
        if self._cursors:
            raise _blocking("close")

    async def close_async(self) -> None:
        cursors, self._cursors = self._cursors, []
        for cursor in cursors:
            await cursor.close()


class AsyncSQLiteProvider(ProviderFactory):
    """Provider for SQLite through ``aiosqlite``; use with the ``*_async`` primitives."""

    PROVIDER_NAME = "aiosqlite"
    error_types = (sqlite3.Error,)

    def __init__(
        self,
        connection_string: str,
        *,
        wal_mode: bool = True,
        foreign_keys: bool = True,
    ) -> None:
        super().__init__(connection_string, wal_mode=wal_mode, foreign_keys=foreign_keys)

    def create_connection(self) -> AsyncSQLiteConnection:
        return AsyncSQLiteConnection(self.connection_string, **self.options)

    def create_command(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> AsyncSQLiteCommand:
        return AsyncSQLiteCommand(text, connection, command_type)  # type: ignore[arg-type]
