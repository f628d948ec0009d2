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

"""Transaction scopes.

A scope commits only if its body finishes without raising *and* no
:class:`~dbtowel.errors.TowelError` was produced inside it, including
errors that an inline ``on_error`` handler swallowed.  The active scope is
tracked in a :class:`~contextvars.ContextVar`, so errors are attributed to
the right scope across ``await`` points and between concurrent tasks.

Usage::

    with transaction_scope(connection):
        towel.execute_non_query("INSERT ...", connection=connection)
        towel.execute_non_query("UPDATE ...", connection=connection)
    # committed here
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from typing import Any

from dbtowel.errors import ErrorKind, TowelError
from dbtowel.providers.base import AsyncConnection, AsyncTransaction, Connection, Transaction

logger = logging.getLogger(__name__)

_ErrorTypes = tuple[type[BaseException], ...]

_active_scope: ContextVar[TransactionScope | None] = ContextVar(
    "dbtowel_transaction_scope", default=None
)


class TransactionScope:
    """State of one transaction: the connection and the errors seen inside it."""

    def __init__(self, connection: Connection, transaction: Transaction) -> None:
        self.connection = connection
        self.transaction = transaction
        self.failures: list[TowelError] = []

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def record(self, error: TowelError) -> None:
        if not any(f is error for f in self.failures):
            self.failures.append(error)


def current_scope() -> TransactionScope | None:
    """Return the innermost active scope, if any."""
    return _active_scope.get()


def record_failure(error: TowelError) -> TowelError:
    """Mark the active scope (if any) as failed by *error*; return *error*."""
    scope = _active_scope.get()
    if scope is not None:
        scope.record(error)
    return error


def _run_failed(cause: BaseException | None) -> TowelError:
    return TowelError(
        ErrorKind.TRANSACTION_FAILED, "The transaction failed to successfully run.", cause
    )


def _complete_failed(cause: BaseException) -> TowelError:
    return TowelError(
        ErrorKind.TRANSACTION_COMPLETE_FAILED, "The transaction failed to complete.", cause
    )


@contextmanager
def transaction_scope(
    connection: Connection,
    error_types: _ErrorTypes = (Exception,),
) -> Generator[TransactionScope, None, None]:
    """Context manager that commits on success, rolls back otherwise.

    *error_types* are the driver exceptions to normalize: a failure to
    begin or roll back becomes ``TRANSACTION_FAILED``, a failure to commit
    ``TRANSACTION_COMPLETE_FAILED``.
    """
    try:
        transaction = connection.begin()
    except TowelError:
        raise
    except error_types as exc:
        raise _run_failed(exc) from exc

    scope = TransactionScope(connection, transaction)
    token = _active_scope.set(scope)
    try:
        yield scope
    except BaseException:
        _active_scope.reset(token)
        _rollback_quietly(transaction, error_types)
        raise
    _active_scope.reset(token)

    if scope.failed:
        _rollback(transaction, error_types)
        raise _run_failed(scope.failures[0])

    try:
        transaction.commit()
    except error_types as exc:
        _rollback_quietly(transaction, error_types)
        raise _complete_failed(exc) from exc
    logger.debug("Transaction committed")


def _rollback(transaction: Transaction, error_types: _ErrorTypes) -> None:
    try:
        transaction.rollback()
    except error_types as exc:
        raise _run_failed(exc) from exc
    logger.debug("Transaction rolled back")


def _rollback_quietly(transaction: Transaction, error_types: _ErrorTypes) -> None:
    # Another exception is already propagating; it takes precedence.
    try:
        transaction.rollback()
    except error_types as exc:
        logger.debug("Rollback failed: %s", exc)
    else:
        logger.debug("Transaction rolled back")


@asynccontextmanager
async def transaction_scope_async(
    connection: Connection,
    error_types: _ErrorTypes = (Exception,),
) -> AsyncGenerator[TransactionScope, None]:
    """Non-blocking :func:`transaction_scope`.

    Awaits ``begin_async`` / ``commit_async`` / ``rollback_async`` on handles
    that provide them and calls the blocking methods otherwise.
    """
    try:
        if isinstance(connection, AsyncConnection):
            transaction = await connection.begin_async()
        else:
            transaction = connection.begin()
    except TowelError:
        raise
    except error_types as exc:
        raise _run_failed(exc) from exc

    scope = TransactionScope(connection, transaction)
    token = _active_scope.set(scope)
    try:
        yield scope
    except BaseException:
        _active_scope.reset(token)
        await _rollback_quietly_async(transaction, error_types)
        raise
    _active_scope.reset(token)

    if scope.failed:
        try:
            await _finish(transaction, commit=False)
        except error_types as exc:
            raise _run_failed(exc) from exc
        raise _run_failed(scope.failures[0])

    try:
        await _finish(transaction, commit=True)
    except error_types as exc:
        await _rollback_quietly_async(transaction, error_types)
        raise _complete_failed(exc) from exc
    logger.debug("Transaction committed")


async def _finish(transaction: Any, *, commit: bool) -> None:
    if isinstance(transaction, AsyncTransaction):
        await (transaction.commit_async() if commit else transaction.rollback_async())
    elif commit:
        transaction.commit()
    else:
        transaction.rollback()


async def _rollback_quietly_async(transaction: Transaction, error_types: _ErrorTypes) -> None:
    try:
        await _finish(transaction, commit=False)
    except error_types as exc:
        logger.debug("Rollback failed: %s", exc)
    else:
        logger.debug("Transaction rolled back")
