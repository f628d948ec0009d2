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

"""Integration tests against a real SQLite database file."""

from __future__ import annotations

import sqlite3

import pytest

from dbtowel import ConnectionState, DatabaseTowel, ErrorKind, Operation, TowelError

SCHEMA = """
CREATE TABLE papers (
    id INTEGER PRIMARY KEY,
    doi TEXT UNIQUE NOT NULL,
    title TEXT,
    score REAL
)
"""

INSERT = "INSERT INTO papers (doi, title, score) VALUES (:doi, :title, :score)"


class _TrackedConnection:
    """Wraps a sqlite3 connection and remembers whether it was closed."""

    def __init__(self, conn):
        self._conn = conn
        self.closed = False

    def execute(self, sql, *args):
        return self._conn.execute(sql, *args)

    def close(self):
        self.closed = True
        self._conn.close()


@pytest.fixture
def db(db_path):
    towel = DatabaseTowel(db_path, "sqlite")
    towel.execute_non_query(SCHEMA)
    return towel


def _insert(towel, doi, title="t", score=0.5, **kwargs):
    return towel.execute_non_query(
        INSERT, {"doi": doi, "title": title, "score": score}, **kwargs
    )


class TestCommands:
    def test_insert_and_count(self, db):
        assert _insert(db, "10.1/a") == 1
        assert _insert(db, "10.1/b") == 1
        assert db.execute_scalar("SELECT COUNT(*) FROM papers") == 2

    def test_scalar_without_rows(self, db):
        assert db.execute_scalar("SELECT title FROM papers WHERE id = -1") is None

    def test_reader_table(self, db):
        _insert(db, "10.1/a", "Alpha", 0.9)
        _insert(db, "10.1/b", "Beta", None)
        table = db.execute_reader(
            "SELECT id, doi, title, score FROM papers ORDER BY id"
        )
        assert table.column_names == ["id", "doi", "title", "score"]
        assert len(table) == 2
        assert table.rows[0]["title"] == "Alpha"
        assert table.rows[1]["score"] is None
        assert table.columns[table.ordinal("id")].data_type is int
        assert table.columns[table.ordinal("score")].data_type is float

    def test_reader_empty_result_keeps_columns(self, db):
        table = db.execute_reader("SELECT doi, title FROM papers")
        assert table.column_names == ["doi", "title"]
        assert len(table) == 0

    def test_stream_reader(self, db):
        for i in range(5):
            _insert(db, f"10.1/{i}")

        def first_two(reader):
            dois = []
            while len(dois) < 2 and reader.read():
                dois.append(reader["doi"])
            return dois

        assert db.stream_reader("SELECT doi FROM papers ORDER BY doi", first_two) == [
            "10.1/0", "10.1/1",
        ]

    def test_shared_connection(self, db):
        def work(conn):
            _insert(db, "10.1/a", connection=conn)
            return db.execute_scalar("SELECT doi FROM papers", connection=conn)

        assert db.execute_sql(work) == "10.1/a"

    def test_connections_closed(self, db):
        seen = []
        db.execute_sql(seen.append)
        assert seen[0].state is ConnectionState.CLOSED

    def test_named_parameter(self, db):
        _insert(db, "10.1/a", "Alpha")
        title = db.execute_scalar("SELECT title FROM papers WHERE doi = :doi", {"doi": "10.1/a"})
        assert title == "Alpha"


class TestFailures:
    def test_bad_sql(self, db):
        with pytest.raises(TowelError) as exc_info:
            db.execute_reader("SELEKT * FROM papers")
        assert exc_info.value.kind is ErrorKind.COMMAND_EXECUTE_READER_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.OperationalError)

    def test_constraint_violation(self, db):
        _insert(db, "10.1/a")
        with pytest.raises(TowelError) as exc_info:
            _insert(db, "10.1/a")
        assert exc_info.value.kind is ErrorKind.COMMAND_EXECUTE_NON_QUERY_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.IntegrityError)

    def test_open_failure(self, tmp_path):
        towel = DatabaseTowel(str(tmp_path), "sqlite")
        with pytest.raises(TowelError) as exc_info:
            towel.execute_scalar("SELECT 1")
        assert exc_info.value.kind is ErrorKind.CONNECTION_OPEN_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.Error)

    def test_not_a_database_closes_raw_connection(self, tmp_path, monkeypatch):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"plain text, not an sqlite file\n" * 200)
        opened = []
        connect = sqlite3.connect

        def tracking_connect(*args, **kwargs):
            conn = _TrackedConnection(connect(*args, **kwargs))
            opened.append(conn)
            return conn

        monkeypatch.setattr(sqlite3, "connect", tracking_connect)
        towel = DatabaseTowel(str(path), "sqlite")
        with pytest.raises(TowelError) as exc_info:
            towel.execute_scalar("SELECT 1")
        assert exc_info.value.kind is ErrorKind.CONNECTION_OPEN_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.DatabaseError)
        assert len(opened) == 1
        assert opened[0].closed

    def test_parent_path_is_a_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        towel = DatabaseTowel(str(blocker / "sub" / "x.db"), "sqlite")
        with pytest.raises(TowelError) as exc_info:
            towel.execute_scalar("SELECT 1")
        assert exc_info.value.kind is ErrorKind.CONNECTION_OPEN_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.OperationalError)
        assert isinstance(exc_info.value.cause.__cause__, OSError)

    def test_stored_procedures_not_supported(self, db):
        with pytest.raises(TowelError) as exc_info:
            db.execute_scalar_stored_procedure("count_papers")
        assert exc_info.value.kind is ErrorKind.STORED_PROCEDURE_EXECUTE_FAILED
        assert exc_info.value.operation is Operation.SCALAR
        assert isinstance(exc_info.value.cause, sqlite3.NotSupportedError)

    def test_error_handler(self, db):
        assert db.execute_scalar("SELECT nope FROM papers", on_error=lambda err: 0) == 0


class TestTransactions:
    def test_commit(self, db):
        def work(conn):
            _insert(db, "10.1/a", connection=conn)
            _insert(db, "10.1/b", connection=conn)

        db.execute_sql_transaction(work)
        assert db.execute_scalar("SELECT COUNT(*) FROM papers") == 2

    def test_rollback_on_failure(self, db):
        def work(conn):
            _insert(db, "10.1/a", connection=conn)
            _insert(db, "10.1/a", connection=conn)

        with pytest.raises(TowelError) as exc_info:
            db.execute_sql_transaction(work)
        assert exc_info.value.kind is ErrorKind.COMMAND_EXECUTE_NON_QUERY_FAILED
        assert db.execute_scalar("SELECT COUNT(*) FROM papers") == 0

    def test_rollback_on_swallowed_failure(self, db):
        def work(conn):
            _insert(db, "10.1/a", connection=conn)
            _insert(db, "10.1/a", connection=conn, on_error=lambda err: 0)

        with pytest.raises(TowelError) as exc_info:
            db.execute_sql_transaction(work)
        assert exc_info.value.kind is ErrorKind.TRANSACTION_FAILED
        assert db.execute_scalar("SELECT COUNT(*) FROM papers") == 0

    def test_failed_transaction_leaves_other_work(self, db):
        def work(conn):
            def failing(inner):
                _insert(db, "10.1/a", connection=inner)
                raise RuntimeError("abort")

            with pytest.raises(RuntimeError):
                db.execute_sql_transaction(failing)
            _insert(db, "10.1/b", connection=conn)

        db.execute_sql(work)
        assert db.execute_scalar("SELECT doi FROM papers") == "10.1/b"
