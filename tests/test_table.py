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

"""Tests for dbtowel.table — materializing readers into tables."""

from __future__ import annotations

import pytest

from dbtowel import ErrorKind, Table, TowelError, reader_to_table, reader_to_table_async
from fakes import AsyncFakeReader, FakeDriver, FakeReader

COLUMNS = [("id", int), ("name", str), ("score", float)]
ROWS = [(1, "alpha", 0.5), (2, "beta", None), (3, None, 1.5)]


def _reader(columns=COLUMNS, rows=ROWS, cls=FakeReader):
    return cls(FakeDriver(), columns, rows)


class TestReaderToTable:
    def test_columns_and_rows_preserved(self):
        table = reader_to_table(_reader())
        assert table.column_names == ["id", "name", "score"]
        assert [c.data_type for c in table.columns] == [int, str, float]
        assert len(table) == 3
        assert [list(r) for r in table] == [list(r) for r in ROWS]

    def test_row_access(self):
        table = reader_to_table(_reader())
        row = table.rows[0]
        assert row["name"] == "alpha"
        assert row[2] == 0.5
        assert row.as_dict() == {"id": 1, "name": "alpha", "score": 0.5}
        assert row.get("missing", "x") == "x"
        assert row == [1, "alpha", 0.5]
        assert table.rows[1]["score"] is None

    def test_zero_rows(self):
        table = reader_to_table(_reader(rows=[]))
        assert table.column_names == ["id", "name", "score"]
        assert len(table) == 0

    def test_schemaless_reader(self):
        table = reader_to_table(_reader(columns=[], rows=[]))
        assert table.columns == []
        assert table.rows == []

    def test_type_inferred_from_values(self):
        columns = [("a", None), ("b", None)]
        rows = [(None, None), ("x", None), ("y", None)]
        table = reader_to_table(_reader(columns, rows))
        assert table.columns[0].data_type is str
        assert table.columns[1].data_type is None

    def test_declared_type_not_overridden(self):
        table = reader_to_table(_reader([("n", float)], [(1,)]))
        assert table.columns[0].data_type is float

    def test_none_reader(self):
        with pytest.raises(TowelError) as exc_info:
            reader_to_table(None)
        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


class TestReaderToTableAsync:
    @pytest.mark.asyncio
    async def test_uses_read_async(self):
        reader = _reader(cls=AsyncFakeReader)
        table = await reader_to_table_async(reader)
        assert len(table) == 3
        assert reader.driver.calls.count("read_async") == 4

    @pytest.mark.asyncio
    async def test_falls_back_to_read(self):
        reader = _reader()
        table = await reader_to_table_async(reader)
        assert [r["id"] for r in table] == [1, 2, 3]
        assert "read_async" not in reader.driver.calls

    @pytest.mark.asyncio
    async def test_zero_rows(self):
        table = await reader_to_table_async(_reader(rows=[], cls=AsyncFakeReader))
        assert len(table.columns) == 3
        assert len(table) == 0


class TestTable:
    def test_add_row_checks_width(self):
        table = Table()
        table.add_column("a")
        with pytest.raises(ValueError):
            table.add_row([1, 2])

    def test_ordinal(self):
        table = Table()
        table.add_column("a")
        table.add_column("b")
        assert table.ordinal("b") == 1
        with pytest.raises(KeyError):
            table.ordinal("c")
