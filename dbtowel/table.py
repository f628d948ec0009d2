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

"""In-memory tables materialized from readers.

A :class:`Table` is a complete snapshot of one result set: ordered,
typed columns and ordered rows.  It stays valid after the cursor and
connection that produced it are closed.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from dbtowel.errors import invalid_argument
from dbtowel.providers.base import AsyncReader, Reader


@dataclass
class Column:
    """A result column.

    Attributes:
        name: Column name as reported by the cursor.
        data_type: Python type of the values, or ``None`` if it could not be
            inferred (e.g. an all-``NULL`` column on a driver without type codes).
    """

    name: str
    data_type: type | None = None


class Row:
    """One table row, indexable by position or column name."""

    __slots__ = ("_table", "_values")

    def __init__(self, table: Table, values: Sequence[Any]) -> None:
        self._table = table
        self._values = list(values)

    def __getitem__(self, key: int | str) -> Any:
        if isinstance(key, str):
            key = self._table.ordinal(key)
        return self._values[key]

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return self._values == other._values
        if isinstance(other, (list, tuple)):
            return self._values == list(other)
        return NotImplemented

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self._table.column_names, self._values))

    def __repr__(self) -> str:
        return f"Row({self._values!r})"


@dataclass
class Table:
    """Ordered columns and ordered rows of a fully read result set."""

    columns: list[Column] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def ordinal(self, name: str) -> int:
        """Position of the first column called *name* (``KeyError`` if absent)."""
        for i, column in enumerate(self.columns):
            if column.name == name:
                return i
        raise KeyError(name)

    def add_column(self, name: str, data_type: type | None = None) -> Column:
        column = Column(name, data_type)
        self.columns.append(column)
        return column

    def add_row(self, values: Sequence[Any]) -> Row:
        if len(values) != len(self.columns):
            raise ValueError(
                f"Row has {len(values)} values but the table has {len(self.columns)} columns"
            )
        row = Row(self, values)
        self.rows.append(row)
        for column, value in zip(self.columns, row):
            if column.data_type is None and value is not None:
                column.data_type = type(value)
        return row

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)


def _schema(reader: Reader | None) -> Table:
    if reader is None:
        raise invalid_argument("reader", "The reader parameter is required.")
    table = Table()
    for name, data_type in reader.columns():
        table.add_column(name, data_type)
    return table


def _current_row(table: Table, reader: Reader) -> list[Any]:
    return [reader[i] for i in range(len(table.columns))]


def reader_to_table(reader: Reader) -> Table:
    """Drain *reader* into a new :class:`Table`.

    Columns come from the reader's declared schema, in cursor order; rows are
    appended in the order the cursor yields them.  A reader without columns
    or rows gives an empty table.  Columns without a declared type take the
    type of their first non-``NULL`` value.
    """
    table = _schema(reader)
    while reader.read():
        table.add_row(_current_row(table, reader))
    return table


async def reader_to_table_async(reader: Reader) -> Table:
    """Like :func:`reader_to_table`, awaiting ``read_async()`` when available."""
    table = _schema(reader)
    if isinstance(reader, AsyncReader):
        while await reader.read_async():
            table.add_row(_current_row(table, reader))
    else:
        while reader.read():
            table.add_row(_current_row(table, reader))
    return table
