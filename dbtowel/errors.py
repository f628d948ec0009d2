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

"""Error taxonomy.

Every failure surfaced by :mod:`dbtowel` is a :class:`TowelError`.  The
``kind`` says which phase failed; the driver exception that caused it is
kept as ``cause`` (and as ``__cause__`` when raised with ``from``).
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    UNKNOWN = "unknown"
    INVALID_ARGUMENT = "invalid_argument"
    CONNECTION_OPEN_FAILED = "connection_open_failed"
    COMMAND_EXECUTE_NON_QUERY_FAILED = "command_execute_non_query_failed"
    COMMAND_EXECUTE_SCALAR_FAILED = "command_execute_scalar_failed"
    COMMAND_EXECUTE_READER_FAILED = "command_execute_reader_failed"
    STORED_PROCEDURE_EXECUTE_FAILED = "stored_procedure_execute_failed"
    TRANSACTION_COMPLETE_FAILED = "transaction_complete_failed"
    TRANSACTION_FAILED = "transaction_failed"


class Operation(Enum):
    """The kind of execution a command performs."""

    NON_QUERY = "non_query"
    SCALAR = "scalar"
    READER = "reader"


_COMMAND_FAILURES: dict[Operation, ErrorKind] = {
    Operation.NON_QUERY: ErrorKind.COMMAND_EXECUTE_NON_QUERY_FAILED,
    Operation.SCALAR: ErrorKind.COMMAND_EXECUTE_SCALAR_FAILED,
    Operation.READER: ErrorKind.COMMAND_EXECUTE_READER_FAILED,
}

_PROCEDURE_LABELS: dict[Operation, str] = {
    Operation.NON_QUERY: "non query",
    Operation.SCALAR: "scalar",
    Operation.READER: "reader",
}


class TowelError(Exception):
    """Normalized database error.

    Attributes:
        kind: The :class:`ErrorKind` of the failure; ``UNKNOWN`` when not
            given.
        message: Human-readable description.
        cause: The originating exception, if any.
        operation: For execution failures, the :class:`Operation` that failed.
    """

    def __init__(
        self,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        message: str = "An unknown database error occurred.",
        cause: BaseException | None = None,
        operation: Operation | None = None,
    ) -> None:
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._cause = cause
        self._operation = operation
        if cause is not None:
            self.__cause__ = cause

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def cause(self) -> BaseException | None:
        return self._cause

    @property
    def operation(self) -> Operation | None:
        return self._operation

    def __repr__(self) -> str:
        return f"TowelError({self._kind.name}, {self._message!r})"


def invalid_argument(name: str, message: str) -> TowelError:
    """Build an ``INVALID_ARGUMENT`` error for the argument *name*."""
    return TowelError(ErrorKind.INVALID_ARGUMENT, message, ValueError(name))


def execute_failure(
    operation: Operation,
    cause: BaseException,
    *,
    stored_procedure: bool = False,
) -> TowelError:
    """Build the error for a driver failure while executing a command.

    Stored procedures share a single kind; ``operation`` records which
    execution failed.
    """
    if stored_procedure:
        return TowelError(
            ErrorKind.STORED_PROCEDURE_EXECUTE_FAILED,
            f"Failed to successfully execute the {_PROCEDURE_LABELS[operation]} stored procedure.",
            cause,
            operation,
        )
    return TowelError(
        _COMMAND_FAILURES[operation],
        "Failed to successfully execute the command.",
        cause,
        operation,
    )
