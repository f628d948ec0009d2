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

"""The :class:`DatabaseTowel` facade.

Every public operation funnels through a handful of primitives: open a
connection, create a command, execute it once, and (for readers) drain
the cursor into a :class:`~dbtowel.table.Table`.  Each primitive
validates its arguments before touching the database, releases every
connection, command and reader it created on every exit path, and turns
driver exceptions into :class:`~dbtowel.errors.TowelError`.

Usage::

    from dbtowel import DatabaseTowel

    towel = DatabaseTowel("~/.myapp/data.db", "sqlite")
    towel.execute_non_query(
        "INSERT INTO papers (doi, title) VALUES (:doi, :title)",
        {"doi": "10.1101/x", "title": "A paper"},
    )
    count = towel.execute_scalar("SELECT COUNT(*) FROM papers")
    table = towel.execute_reader("SELECT * FROM papers")

Each operation has an ``_async`` twin with the same arguments, and takes an
optional ``on_error`` handler whose return value replaces the result when
the operation fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Union

from dbtowel.errors import ErrorKind, Operation, TowelError, execute_failure, invalid_argument
from dbtowel.providers import get_provider
from dbtowel.providers.base import (
    AsyncCommand,
    AsyncConnection,
    Command,
    CommandType,
    Connection,
    Parameter,
    ProviderFactory,
    Reader,
)
from dbtowel.result import Result
from dbtowel.table import Table, reader_to_table, reader_to_table_async
from dbtowel.transactions import record_failure, transaction_scope, transaction_scope_async
from dbtowel.utils import maybe_await, release

logger = logging.getLogger(__name__)

Parameters = Union[Sequence[Parameter], Mapping[str, Any], None]
ErrorHandler = Callable[[TowelError], Any]


def _fail(error: TowelError) -> TowelError:
    return record_failure(error)


def _require_callback(callback: Any, name: str) -> None:
    if callback is None:
        raise _fail(invalid_argument(name, "The context parameter is required."))


class DatabaseTowel:
    """Convenience facade over one database provider.

    Args:
        connection_string: Driver connection string (file path for SQLite,
            DSN for PostgreSQL).
        provider_name: Built-in provider name, see
            :func:`~dbtowel.providers.list_providers`.
        provider: A ready-made :class:`ProviderFactory`; when given,
            *connection_string* and *provider_name* are not used.
        **options: Extra keyword options for the built-in provider.
    """

    def __init__(
        self,
        connection_string: str | None = None,
        provider_name: str | None = None,
        *,
        provider: ProviderFactory | None = None,
        **options: Any,
    ) -> None:
        if provider is None:
            if connection_string is None and provider_name is None:
                raise invalid_argument(
                    "provider", "The database provider factory is required."
                )
            provider = get_provider(provider_name or "", connection_string or "", **options)
        self._provider = provider

    @property
    def provider(self) -> ProviderFactory:
        return self._provider

    def __repr__(self) -> str:
        return f"DatabaseTowel({self._provider!r})"

    # --- Factory pass-throughs ---

    def create_connection(self) -> Connection:
        """Create a connection in the unopened state."""
        return self._provider.create_connection()

    def create_command(
        self,
        text: str,
        connection: Connection,
        command_type: CommandType = CommandType.TEXT,
    ) -> Command:
        return self._provider.create_command(text, connection, command_type)

    def create_parameter(self, name: str, value: Any, db_type: Any = None) -> Parameter:
        return self._provider.create_parameter(name, value, db_type)

    def reader_to_table(self, reader: Reader) -> Table:
        """Load the remaining rows of *reader* into a :class:`Table`."""
        if reader is None:
            raise _fail(invalid_argument("reader", "The reader parameter is required."))
        return reader_to_table(reader)

    async def reader_to_table_async(self, reader: Reader) -> Table:
        if reader is None:
            raise _fail(invalid_argument("reader", "The reader parameter is required."))
        return await reader_to_table_async(reader)

    # --- Connection scope ---

    def execute_sql(
        self,
        on_connection: Callable[[Connection], Any],
        *,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        """Open a connection, pass it to *on_connection*, then close it.

        Returns whatever *on_connection* returns.
        """
        return self._handled(on_error, self._execute_sql, on_connection)

    async def execute_sql_async(
        self,
        on_connection: Callable[[Connection], Any],
        *,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(on_error, self._execute_sql_async, on_connection)

    def execute_sql_transaction(
        self,
        on_connection: Callable[[Connection], Any],
        *,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        """Like :meth:`execute_sql`, inside a commit-on-success transaction.

        Pass the connection on to the primitives (``connection=...``) so
        they take part in the transaction.
        """
        return self._handled(on_error, self._execute_sql_transaction, on_connection)

    async def execute_sql_transaction_async(
        self,
        on_connection: Callable[[Connection], Any],
        *,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(
            on_error, self._execute_sql_transaction_async, on_connection
        )

    # --- Commands ---

    def execute_non_query(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> int:
        """Execute a statement and return the number of affected rows.

        *command* is either SQL text or a :class:`Command` built with
        :meth:`create_command`.  Without *connection*, a connection is
        opened for this one call.  A :class:`Command` runs on its own
        connection; passing a different *connection* is ``INVALID_ARGUMENT``.
        """
        return self._handled(
            on_error, self._run, command, parameters, connection,
            CommandType.TEXT, Operation.NON_QUERY,
        )

    async def execute_non_query_async(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> int:
        return await self._handled_async(
            on_error, self._run_async, command, parameters, connection,
            CommandType.TEXT, Operation.NON_QUERY,
        )

    def execute_scalar(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        """Execute a query and return the first column of the first row."""
        return self._handled(
            on_error, self._run, command, parameters, connection,
            CommandType.TEXT, Operation.SCALAR,
        )

    async def execute_scalar_async(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(
            on_error, self._run_async, command, parameters, connection,
            CommandType.TEXT, Operation.SCALAR,
        )

    def execute_reader(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_read: Callable[[Reader], Any] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        """Execute a query and return its rows as a :class:`Table`.

        With *on_read*, the live reader is passed to it instead and its
        return value is returned; the reader is closed once it returns.
        """
        if on_read is not None:
            return self.stream_reader(
                command, on_read, parameters, connection=connection, on_error=on_error
            )
        return self._handled(
            on_error, self._run, command, parameters, connection,
            CommandType.TEXT, Operation.READER,
        )

    async def execute_reader_async(
        self,
        command: Command | str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_read: Callable[[Reader], Any] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        if on_read is not None:
            return await self.stream_reader_async(
                command, on_read, parameters, connection=connection, on_error=on_error
            )
        return await self._handled_async(
            on_error, self._run_async, command, parameters, connection,
            CommandType.TEXT, Operation.READER,
        )

    def stream_reader(
        self,
        command: Command | str,
        on_read: Callable[[Reader], Any],
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        """Execute a query and hand the open reader to *on_read*.

        Rows are not materialized; the reader is only valid inside the
        callback.
        """
        return self._handled(on_error, self._stream, command, on_read, parameters, connection)

    async def stream_reader_async(
        self,
        command: Command | str,
        on_read: Callable[[Reader], Any],
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(
            on_error, self._stream_async, command, on_read, parameters, connection
        )

    # --- Stored procedures ---

    def execute_non_query_stored_procedure(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> int:
        return self._handled(
            on_error, self._run_procedure, name, parameters, connection,
            Operation.NON_QUERY,
        )

    async def execute_non_query_stored_procedure_async(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> int:
        return await self._handled_async(
            on_error, self._run_procedure_async, name, parameters, connection,
            Operation.NON_QUERY,
        )

    def execute_scalar_stored_procedure(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return self._handled(
            on_error, self._run_procedure, name, parameters, connection,
            Operation.SCALAR,
        )

    async def execute_scalar_stored_procedure_async(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(
            on_error, self._run_procedure_async, name, parameters, connection,
            Operation.SCALAR,
        )

    def execute_reader_stored_procedure(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_read: Callable[[Reader], Any] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return self._handled(
            on_error, self._run_procedure, name, parameters, connection,
            Operation.READER, on_read,
        )

    async def execute_reader_stored_procedure_async(
        self,
        name: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
        on_read: Callable[[Reader], Any] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> Any:
        return await self._handled_async(
            on_error, self._run_procedure_async, name, parameters, connection,
            Operation.READER, on_read,
        )

    # ------------------------------------------------------------------
    # Primitives (blocking)
    # ------------------------------------------------------------------

    def _handled(
        self, on_error: ErrorHandler | None, func: Callable[..., Any], *args: Any
    ) -> Any:
        if on_error is None:
            return func(*args)
        return Result.capture(func, *args).unwrap_or_else(on_error)

    def _parameters(self, parameters: Parameters) -> list[Parameter]:
        if parameters is None:
            return []
        if isinstance(parameters, Mapping):
            return [self.create_parameter(k, v) for k, v in parameters.items()]
        return list(parameters)

    def _open(self, connection: Connection) -> None:
        try:
            connection.open()
        except TowelError:
            raise
        except self._provider.error_types as exc:
            raise self._open_failed(exc) from exc

    def _open_failed(self, exc: BaseException) -> TowelError:
        logger.warning("Failed to open connection: %s", exc)
        return _fail(
            TowelError(
                ErrorKind.CONNECTION_OPEN_FAILED,
                "Failed to successfully open the connection.",
                exc,
            )
        )

    def _execute_failed(
        self, operation: Operation, command: Command, exc: BaseException
    ) -> TowelError:
        logger.warning("Failed to execute %s command: %s", operation.value, exc)
        command_type = getattr(command, "command_type", CommandType.TEXT)
        return _fail(
            execute_failure(
                operation, exc, stored_procedure=command_type is CommandType.STORED_PROCEDURE
            )
        )

    def _execute_sql(self, on_connection: Callable[[Connection], Any]) -> Any:
        _require_callback(on_connection, "on_connection")
        with self.create_connection() as connection:
            self._open(connection)
            return on_connection(connection)

    def _execute_sql_transaction(self, on_connection: Callable[[Connection], Any]) -> Any:
        _require_callback(on_connection, "on_connection")

        def run(connection: Connection) -> Any:
            with transaction_scope(connection, self._provider.error_types):
                return on_connection(connection)

        return self._execute_sql(run)

    def _check_command(
        self, command: Command | str | None, connection: Connection | None
    ) -> None:
        if command is None or (isinstance(command, str) and not command):
            raise _fail(invalid_argument("command", "The command parameter is required."))
        if (
            not isinstance(command, str)
            and connection is not None
            and connection is not command.connection
        ):
            raise _fail(
                invalid_argument(
                    "connection", "The connection is not the connection of the command."
                )
            )

    def _run(
        self,
        command: Command | str,
        parameters: Parameters,
        connection: Connection | None,
        command_type: CommandType,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        self._check_command(command, connection)
        if not isinstance(command, str):
            command.add_parameters(self._parameters(parameters))
            return self._execute(command, operation, on_read)
        if connection is None:
            return self._execute_sql(
                lambda conn: self._run(
                    command, parameters, conn, command_type, operation, on_read
                )
            )
        with self.create_command(command, connection, command_type) as cmd:
            cmd.add_parameters(self._parameters(parameters))
            return self._execute(cmd, operation, on_read)

    def _run_procedure(
        self,
        name: str,
        parameters: Parameters,
        connection: Connection | None,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        if not name or not isinstance(name, str):
            raise _fail(
                invalid_argument("name", "The stored procedure name is required.")
            )
        return self._run(
            name, parameters, connection, CommandType.STORED_PROCEDURE, operation, on_read
        )

    def _stream(
        self,
        command: Command | str,
        on_read: Callable[[Reader], Any],
        parameters: Parameters,
        connection: Connection | None,
    ) -> Any:
        _require_callback(on_read, "on_read")
        return self._run(
            command, parameters, connection, CommandType.TEXT, Operation.READER, on_read
        )

    def _execute(
        self,
        command: Command,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        error_types = self._provider.error_types
        try:
            if operation is Operation.NON_QUERY:
                return command.execute_non_query()
            if operation is Operation.SCALAR:
                return command.execute_scalar()
            reader = command.execute_reader()
        except TowelError:
            raise
        except error_types as exc:
            raise self._execute_failed(operation, command, exc) from exc

        with reader:
            try:
                if on_read is not None:
                    return on_read(reader)
                return reader_to_table(reader)
            except TowelError:
                raise
            except error_types as exc:
                raise self._execute_failed(operation, command, exc) from exc

    # ------------------------------------------------------------------
    # Primitives (non-blocking)
    # ------------------------------------------------------------------

    async def _handled_async(
        self, on_error: ErrorHandler | None, func: Callable[..., Any], *args: Any
    ) -> Any:
        if on_error is None:
            return await func(*args)
        result = await Result.capture_async(func, *args)
        return await result.unwrap_or_else_async(on_error)

    async def _open_async(self, connection: Connection) -> None:
        try:
            if isinstance(connection, AsyncConnection):
                await connection.open_async()
            else:
                connection.open()
        except TowelError:
            raise
        except self._provider.error_types as exc:
            raise self._open_failed(exc) from exc

    async def _execute_sql_async(self, on_connection: Callable[[Connection], Any]) -> Any:
        _require_callback(on_connection, "on_connection")
        connection = self.create_connection()
        try:
            await self._open_async(connection)
            return await maybe_await(on_connection(connection))
        finally:
            await release(connection)

    async def _execute_sql_transaction_async(
        self, on_connection: Callable[[Connection], Any]
    ) -> Any:
        _require_callback(on_connection, "on_connection")

        async def run(connection: Connection) -> Any:
            async with transaction_scope_async(connection, self._provider.error_types):
                return await maybe_await(on_connection(connection))

        return await self._execute_sql_async(run)

    async def _run_async(
        self,
        command: Command | str,
        parameters: Parameters,
        connection: Connection | None,
        command_type: CommandType,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        self._check_command(command, connection)
        if not isinstance(command, str):
            command.add_parameters(self._parameters(parameters))
            return await self._execute_async(command, operation, on_read)
        if connection is None:
            return await self._execute_sql_async(
                lambda conn: self._run_async(
                    command, parameters, conn, command_type, operation, on_read
                )
            )
        cmd = self.create_command(command, connection, command_type)
        try:
            cmd.add_parameters(self._parameters(parameters))
            return await self._execute_async(cmd, operation, on_read)
        finally:
            await release(cmd)

    async def _run_procedure_async(
        self,
        name: str,
        parameters: Parameters,
        connection: Connection | None,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        if not name or not isinstance(name, str):
            raise _fail(
                invalid_argument("name", "The stored procedure name is required.")
            )
        return await self._run_async(
            name, parameters, connection, CommandType.STORED_PROCEDURE, operation, on_read
        )

    async def _stream_async(
        self,
        command: Command | str,
        on_read: Callable[[Reader], Any],
        parameters: Parameters,
        connection: Connection | None,
    ) -> Any:
        _require_callback(on_read, "on_read")
        return await self._run_async(
            command, parameters, connection, CommandType.TEXT, Operation.READER, on_read
        )

    async def _execute_async(
        self,
        command: Command,
        operation: Operation,
        on_read: Callable[[Reader], Any] | None = None,
    ) -> Any:
        error_types = self._provider.error_types
        try:
            if isinstance(command, AsyncCommand):
                if operation is Operation.NON_QUERY:
                    return await command.execute_non_query_async()
                if operation is Operation.SCALAR:
                    return await command.execute_scalar_async()
                reader = await command.execute_reader_async()
            else:
                if operation is Operation.NON_QUERY:
                    return command.execute_non_query()
                if operation is Operation.SCALAR:
                    return command.execute_scalar()
                reader = command.execute_reader()
        except TowelError:
            raise
        except error_types as exc:
            raise self._execute_failed(operation, command, exc) from exc

        try:
            if on_read is not None:
                return await maybe_await(on_read(reader))
            return await reader_to_table_async(reader)
        except TowelError:
            raise
        except error_types as exc:
            raise self._execute_failed(operation, command, exc) from exc
        finally:
            await release(reader)
