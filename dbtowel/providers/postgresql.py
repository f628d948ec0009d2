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

"""PostgreSQL provider, built on ``psycopg2`` (optional dependency).

Connections run with ``autocommit`` enabled; a transaction switches it off
until the transaction is committed or rolled back.  Stored procedures
(functions) are invoked with ``cursor.callproc`` using named arguments.
"""

from __future__ import annotations

import datetime
import decimal
import logging
import uuid
from types import ModuleType
from typing import Any

from dbtowel.providers.base import CommandType, Connection, ProviderFactory
from dbtowel.providers.dbapi import DBAPICommand, DBAPIConnection

logger = logging.getLogger(__name__)

# Built-in type OIDs (pg_type.oid) → python type
PG_TYPES: dict[int, type] = {
    16: bool,
    17: bytes,
    18: str,
    19: str,
    20: int,
    21: int,
    23: int,
    25: str,
    114: str,
    700: float,
    701: float,
    1042: str,
    1043: str,
    1082: datetime.date,
    1083: datetime.time,
    1114: datetime.datetime,
    1184: datetime.datetime,
    1186: datetime.timedelta,
    1700: decimal.Decimal,
    2950: uuid.UUID,
    3802: dict,
}


def _import_driver() -> ModuleType:
    try:
        import psycopg2
    except ImportError:
        raise ImportError(
            "psycopg2 not installed. Install with: pip install dbtowel[postgresql]"
        )
    return psycopg2


class PostgreSQLConnection(DBAPIConnection):
    """PostgreSQL session opened from a libpq DSN."""

    def __init__(self, connection_string: str, driver: ModuleType) -> None:
        super().__init__(connection_string)
        self.driver = driver

    def _connect(self) -> Any:
        conn = self.driver.connect(self.connection_string)
        try:
            conn.autocommit = True
            dbname = conn.get_dsn_parameters().get("dbname", "")
        except BaseException:
            conn.close()
            raise
        logger.debug("PostgreSQL connection opened: %s", dbname)
        return conn

    def _begin(self, raw: Any) -> None:
        raw.autocommit = False

    def end_transaction(self) -> None:
        self.raw.autocommit = True

    def type_of(self, type_code: Any) -> type | None:
        return PG_TYPES.get(type_code)


class PostgreSQLProvider(ProviderFactory):
    """Provider for PostgreSQL via ``psycopg2``.

    Either a full DSN (``"host=localhost dbname=app user=app"``) or a
    ``postgresql://`` URI is accepted as the connection string.
    """

    PROVIDER_NAME = "postgresql"

    def __init__(self, connection_string: str) -> None:
        super().__init__(connection_string)
        self._driver = _import_driver()
        self.error_types = (self._driver.Error,)

    def create_connection(self) -> PostgreSQLConnection:
        return PostgreSQLConnection(self.connection_string, self._driver)

    def create_command(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> DBAPICommand:
        return DBAPICommand(text, connection, command_type)  # type: ignore[arg-type]
