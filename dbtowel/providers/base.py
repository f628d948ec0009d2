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

"""Provider abstraction.

A provider creates the three things every primitive needs: an unopened
:class:`Connection`, a :class:`Command` bound to a connection, and a
:class:`Parameter`.  Everything driver-specific lives behind these
classes, so the primitives can run against a fake driver in tests.

Non-blocking support is a capability, not a type hierarchy: a handle that
also implements the ``*_async`` methods described by :class:`AsyncConnection`,
:class:`AsyncCommand`, :class:`AsyncReader` or :class:`AsyncTransaction` is
awaited; any other handle is called synchronously.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from dbtowel.errors import invalid_argument

PARAMETER_SIGILS = "@:$"


class CommandType(Enum):
    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


class ConnectionState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Parameter:
    """A named command parameter.

    Attributes:
        name: Parameter name.  A leading ``@``, ``:`` or ``$`` is accepted
            and ignored when binding.
        value: The value to bind (``None`` binds SQL ``NULL``).
        db_type: Optional declared type, passed through to drivers that
            use it.
    """

    name: str
    value: Any = None
    db_type: Any = None

    @property
    def key(self) -> str:
        """The name without its sigil, as used for named binding."""
        return self.name.lstrip(PARAMETER_SIGILS)


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------


class Transaction(ABC):
    """A transaction begun on an open connection."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class Reader(ABC):
    """Forward-only cursor over the rows of one result set.

    ``reader[i]`` and ``reader["name"]`` return values of the current row,
    which is the row most recently reached by :meth:`read`.
    """

    @abstractmethod
    def columns(self) -> list[tuple[str, type | None]]:
        """Declared ``(name, python type)`` pairs, in cursor order.

        The type is ``None`` when the driver does not report one.
        """

    @abstractmethod
    def read(self) -> bool:
        """Advance to the next row; ``False`` once the cursor is exhausted."""

    @abstractmethod
    def __getitem__(self, key: int | str) -> Any: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> Reader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Command(ABC):
    """A command bound to one connection.

    Attributes:
        text: SQL text, or the procedure name for stored procedures.
        connection: The :class:`Connection` the command runs on.
        command_type: :class:`CommandType` of the command.
        parameters: Ordered, mutable list of :class:`Parameter`.
    """

    def __init__(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> None:
        self.text = text
        self.connection = connection
        self.command_type = command_type
        self.parameters: list[Parameter] = []

    def add_parameters(self, parameters: Iterable[Parameter] | None) -> Command:
        """Append *parameters* (``None`` adds nothing) and return self."""
        if parameters is None:
            return self
        self.parameters.extend(parameters)
        return self

    def bind(self) -> dict[str, Any]:
        """Parameters as a name → value mapping for named binding."""
        return {p.key: p.value for p in self.parameters}

    @property
    def is_stored_procedure(self) -> bool:
        return self.command_type is CommandType.STORED_PROCEDURE

    @abstractmethod
    def execute_non_query(self) -> int:
        """Execute and return the number of affected rows."""

    @abstractmethod
    def execute_scalar(self) -> Any:
        """Execute and return the first column of the first row, or ``None``."""

    @abstractmethod
    def execute_reader(self) -> Reader:
        """Execute and return a :class:`Reader` over the result set."""

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> Command:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Connection(ABC):
    """A database session, created unopened.

    Closing is idempotent; leaving a ``with`` block always closes.
    """

    def __init__(self, connection_string: str) -> None:
        self.connection_string = connection_string
        self.state = ConnectionState.UNOPENED

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def begin(self) -> Transaction:
        """Begin a transaction on this (open) connection."""

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Non-blocking capabilities
# ---------------------------------------------------------------------------


@runtime_checkable
class AsyncClosable(Protocol):
    async def close_async(self) -> None: ...


@runtime_checkable
class AsyncConnection(Protocol):
    async def open_async(self) -> None: ...

    async def close_async(self) -> None: ...

    async def begin_async(self) -> Transaction: ...


@runtime_checkable
class AsyncCommand(Protocol):
    async def execute_non_query_async(self) -> int: ...

    async def execute_scalar_async(self) -> Any: ...

    async def execute_reader_async(self) -> Reader: ...

    async def close_async(self) -> None: ...


@runtime_checkable
class AsyncReader(Protocol):
    async def read_async(self) -> bool: ...

    async def close_async(self) -> None: ...


@runtime_checkable
class AsyncTransaction(Protocol):
    async def commit_async(self) -> None: ...

    async def rollback_async(self) -> None: ...


# ---------------------------------------------------------------------------
# Provider factory
# ---------------------------------------------------------------------------


class ProviderFactory(ABC):
    """Creates connections, commands and parameters for one driver.

    Class attributes to override:
        PROVIDER_NAME – short identifier (e.g. ``"sqlite"``).
        error_types   – the driver's exception classes.  Exactly these are
                        normalized into :class:`~dbtowel.errors.TowelError`
                        by the primitives.
    """

    PROVIDER_NAME: str = ""
    error_types: tuple[type[BaseException], ...] = (Exception,)

    def __init__(self, connection_string: str, **options: Any) -> None:
        if not connection_string:
            raise invalid_argument(
                "connection_string", "The connection string is required."
            )
        self.connection_string = connection_string
        self.options = options

    @abstractmethod
    def create_connection(self) -> Connection:
        """Create a connection in the unopened state."""

    @abstractmethod
    def create_command(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> Command: ...

    def create_parameter(self, name: str, value: Any, db_type: Any = None) -> Parameter:
        return Parameter(name=name, value=value, db_type=db_type)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.PROVIDER_NAME!r})"
