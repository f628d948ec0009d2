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

"""Handles over plain DB-API 2.0 drivers.

The connection owns a raw driver connection; commands open cursors on it
and wrap the ``cursor.execute`` / ``fetchone`` pattern.  SQL is passed
through unchanged, so callers write driver-appropriate placeholders
(``:name`` for SQLite, ``%(name)s`` for PostgreSQL).

Subclasses supply the driver module and how to connect; everything else
is shared.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from types import ModuleType
from typing import Any

from dbtowel.providers.base import (
    Command,
    CommandType,
    Connection,
    ConnectionState,
    Reader,
    Transaction,
)

logger = logging.getLogger(__name__)


class DBAPIConnection(Connection):
    """A :class:`Connection` around a DB-API 2.0 connection object.

    Subclasses set ``driver`` to the DB-API module (its ``InterfaceError``
    and ``NotSupportedError`` are raised for misuse) and implement
    :meth:`_connect`.
    """

    driver: ModuleType

    def __init__(self, connection_string: str) -> None:
        super().__init__(connection_string)
        self._raw: Any = None

    @property
    def raw(self) -> Any:
        """The underlying driver connection.

        Raises the driver's ``InterfaceError`` if the connection is not open.
        """
        if self._raw is None or self.state is not ConnectionState.OPEN:
            raise self.driver.InterfaceError("The connection is not open.")
        return self._raw

    @abstractmethod
    def _connect(self) -> Any:
        """Return a new raw driver connection."""

    def open(self) -> None:
        if self.state is ConnectionState.OPEN:
            raise self.driver.InterfaceError("The connection is already open.")
        self._raw = self._connect()
        self.state = ConnectionState.OPEN

    def close(self) -> None:
        raw, self._raw = self._raw, None
        self.state = ConnectionState.CLOSED
        if raw is not None:
            raw.close()
            logger.debug("%s closed", type(self).__name__)

    def begin(self) -> Transaction:
        self._begin(self.raw)
        return DBAPITransaction(self)

    def _begin(self, raw: Any) -> None:
        """Start a transaction on *raw*.  Default: rely on the driver."""

    def end_transaction(self) -> None:
        """Called after commit or rollback.  Default: nothing to restore."""

    def cursor(self) -> Any:
        return self.raw.cursor()

    def type_of(self, type_code: Any) -> type | None:
        """Map a ``cursor.description`` type code to a python type."""
        return type_code if isinstance(type_code, type) else None


class DBAPITransaction(Transaction):
    """Commit / rollback on the raw connection of a :class:`DBAPIConnection`."""

    def __init__(self, connection: DBAPIConnection) -> None:
        self._connection = connection

    def commit(self) -> None:
        self._connection.raw.commit()
        self._connection.end_transaction()

    def rollback(self) -> None:
        self._connection.raw.rollback()
        self._connection.end_transaction()


class DBAPIReader(Reader):
    """A :class:`Reader` over a DB-API cursor, advanced with ``fetchone()``."""

    def __init__(self, cursor: Any, connection: DBAPIConnection) -> None:
        self._cursor = cursor
        self._connection = connection
        self._row: Any = None
        description = cursor.description or ()
        self._columns = [
            (str(column[0]), connection.type_of(column[1])) for column in description
        ]
        self._index: dict[str, int] = {}
        for ordinal, (name, _) in enumerate(self._columns):
            self._index.setdefault(name, ordinal)

    def columns(self) -> list[tuple[str, type | None]]:
        return list(self._columns)

    def read(self) -> bool:
        return self._advance(self._cursor.fetchone())

    def _advance(self, row: Any) -> bool:
        self._row = row
        return row is not None

    def __getitem__(self, key: int | str) -> Any:
        if self._row is None:
            raise self._connection.driver.InterfaceError("No current row.")
        if isinstance(key, str):
            key = self._index[key]
        return self._row[key]

    def close(self) -> None:
        self._cursor.close()


class DBAPICommand(Command):
    """A :class:`Command` executed on a cursor of its connection.

    Stored procedures go through ``cursor.callproc``; drivers whose cursors
    have no ``callproc`` raise their ``NotSupportedError``.
    """

    connection: DBAPIConnection

    def __init__(
        self,
        text: str,
        connection: DBAPIConnection,
        command_type: CommandType = CommandType.TEXT,
    ) -> None:
        super().__init__(text, connection, command_type)
        self._cursors: list[Any] = []

    def _prepare(self, cursor: Any) -> Any:
        self._cursors.append(cursor)
        if self.is_stored_procedure:
            callproc = getattr(cursor, "callproc", None)
            if callproc is None:
                raise self.connection.driver.NotSupportedError(
                    f"{self.connection.driver.__name__} does not support stored procedures"
                )
        return cursor

    def _run(self) -> Any:
        cursor = self._prepare(self.connection.cursor())
        if self.is_stored_procedure:
            if self.parameters:
                cursor.callproc(self.text, self.bind())
            else:
                cursor.callproc(self.text)
        elif self.parameters:
            cursor.execute(self.text, self.bind())
        else:
            cursor.execute(self.text)
        return cursor

    def execute_non_query(self) -> int:
        return self._run().rowcount

    def execute_scalar(self) -> Any:
        row = self._run().fetchone()
        if row is None:
            return None
        return row[0] if len(row) else None

    def execute_reader(self) -> Reader:
        return DBAPIReader(self._run(), self.connection)

    def close(self) -> None:
        cursors, self._cursors = self._cursors, []
        for cursor in cursors:
            cursor.close()
