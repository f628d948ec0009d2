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

"""dbtowel — a thin facade over DB-API database drivers.

Wraps connection handling, command execution (non-query, scalar, reader),
stored procedures and transactions, and reports every driver failure as
a single :class:`TowelError` with a categorical :class:`ErrorKind`.

Usage::

    from dbtowel import DatabaseTowel, ErrorKind, TowelError

    towel = DatabaseTowel("~/.myapp/data.db", "sqlite")

    def add_papers(conn):
        sql = "INSERT INTO papers (doi) VALUES (:doi)"
        towel.execute_non_query(sql, {"doi": "a"}, connection=conn)
        towel.execute_non_query(sql, {"doi": "b"}, connection=conn)

    towel.execute_sql_transaction(add_papers)
    table = towel.execute_reader("SELECT * FROM papers")
    count = towel.execute_scalar("SELECT COUNT(*) FROM papers", on_error=lambda e: 0)
"""

from dbtowel.errors import ErrorKind, Operation, TowelError
from dbtowel.providers import get_provider, list_providers
from dbtowel.providers.base import (
    CommandType,
    ConnectionState,
    Parameter,
    ProviderFactory,
)
from dbtowel.result import Result
from dbtowel.table import Column, Row, Table, reader_to_table, reader_to_table_async
from dbtowel.towel import DatabaseTowel
from dbtowel.transactions import transaction_scope, transaction_scope_async

__all__ = [
    "DatabaseTowel",
    "TowelError",
    "ErrorKind",
    "Operation",
    "Result",
    "Table",
    "Column",
    "Row",
    "reader_to_table",
    "reader_to_table_async",
    "transaction_scope",
    "transaction_scope_async",
    "Parameter",
    "CommandType",
    "ConnectionState",
    "ProviderFactory",
    "get_provider",
    "list_providers",
]
