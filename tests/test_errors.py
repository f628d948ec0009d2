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

"""Tests for dbtowel.errors and dbtowel.result."""

from __future__ import annotations

import pytest

from dbtowel.errors import ErrorKind, Operation, TowelError, execute_failure, invalid_argument
from dbtowel.result import Result


class TestTowelError:
    def test_defaults_to_unknown(self):
        err = TowelError()
        assert err.kind is ErrorKind.UNKNOWN
        assert err.message == "An unknown database error occurred."

    def test_message_without_kind(self):
        cause = OSError("disk")
        err = TowelError(message="lost the file", cause=cause)
        assert err.kind is ErrorKind.UNKNOWN
        assert err.cause is cause

    def test_attributes(self):
        cause = RuntimeError("driver")
        err = TowelError(ErrorKind.CONNECTION_OPEN_FAILED, "no connection", cause)
        assert err.kind is ErrorKind.CONNECTION_OPEN_FAILED
        assert err.message == "no connection"
        assert err.cause is cause
        assert err.__cause__ is cause
        assert err.operation is None
        assert str(err) == "no connection"

    def test_without_cause(self):
        err = TowelError(ErrorKind.UNKNOWN, "?")
        assert err.cause is None
        assert err.__cause__ is None

    def test_kind_is_read_only(self):
        err = TowelError(ErrorKind.UNKNOWN, "?")
        with pytest.raises(AttributeError):
            err.kind = ErrorKind.INVALID_ARGUMENT

    def test_repr(self):
        assert "INVALID_ARGUMENT" in repr(TowelError(ErrorKind.INVALID_ARGUMENT, "x"))


class TestHelpers:
    def test_invalid_argument(self):
        err = invalid_argument("command", "The command parameter is required.")
        assert err.kind is ErrorKind.INVALID_ARGUMENT
        assert isinstance(err.cause, ValueError)
        assert str(err.cause) == "command"

    @pytest.mark.parametrize(
        "operation, kind",
        [
            (Operation.NON_QUERY, ErrorKind.COMMAND_EXECUTE_NON_QUERY_FAILED),
            (Operation.SCALAR, ErrorKind.COMMAND_EXECUTE_SCALAR_FAILED),
            (Operation.READER, ErrorKind.COMMAND_EXECUTE_READER_FAILED),
        ],
    )
    def test_execute_failure_per_operation(self, operation, kind):
        cause = RuntimeError("driver")
        err = execute_failure(operation, cause)
        assert err.kind is kind
        assert err.operation is operation
        assert err.cause is cause
        assert err.message == "Failed to successfully execute the command."

    def test_stored_procedure_failure(self):
        err = execute_failure(Operation.NON_QUERY, RuntimeError(), stored_procedure=True)
        assert err.kind is ErrorKind.STORED_PROCEDURE_EXECUTE_FAILED
        assert err.operation is Operation.NON_QUERY
        assert err.message == "Failed to successfully execute the non query stored procedure."


def _ok():
    return 42


def _broken():
    raise TowelError(ErrorKind.UNKNOWN, "broken")


class TestResult:
    def test_capture_value(self):
        result = Result.capture(_ok)
        assert result.ok
        assert result.unwrap() == 42

    def test_capture_error(self):
        result = Result.capture(_broken)
        assert not result.ok
        assert result.error.kind is ErrorKind.UNKNOWN
        with pytest.raises(TowelError):
            result.unwrap()

    def test_other_exceptions_propagate(self):
        def bug():
            raise KeyError("x")

        with pytest.raises(KeyError):
            Result.capture(bug)

    def test_unwrap_or(self):
        assert Result.capture(_broken).unwrap_or(0) == 0
        assert Result.capture(_ok).unwrap_or(0) == 42

    def test_unwrap_or_else(self):
        seen = []

        def handler(err):
            seen.append(err)
            return "fallback"

        assert Result.capture(_broken).unwrap_or_else(handler) == "fallback"
        assert Result.capture(_ok).unwrap_or_else(handler) == 42
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        async def broken():
            _broken()

        async def handler(err):
            return err.message

        result = await Result.capture_async(broken)
        assert await result.unwrap_or_else_async(handler) == "broken"
