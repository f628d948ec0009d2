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

"""Database providers.

Built-in providers are resolved by name::

    from dbtowel.providers import get_provider

    provider = get_provider("sqlite", "~/.myapp/data.db", wal_mode=False)

The lookup table is fixed; custom providers are passed to
:class:`~dbtowel.DatabaseTowel` directly as instances.
"""

from __future__ import annotations

import importlib
from typing import Any

from dbtowel.errors import invalid_argument
from dbtowel.providers.base import (
    AsyncCommand,
    AsyncConnection,
    AsyncReader,
    AsyncTransaction,
    Command,
    CommandType,
    Connection,
    ConnectionState,
    Parameter,
    ProviderFactory,
    Reader,
    Transaction,
)

__all__ = [
    "AsyncCommand",
    "AsyncConnection",
    "AsyncReader",
    "AsyncTransaction",
    "Command",
    "CommandType",
    "Connection",
    "ConnectionState",
    "Parameter",
    "ProviderFactory",
    "Reader",
    "Transaction",
    "get_provider",
    "list_providers",
]

# provider name → (module, class name); imported on first use
_BUILTINS: dict[str, tuple[str, str]] = {
    "sqlite": ("dbtowel.providers.sqlite", "SQLiteProvider"),
    "aiosqlite": ("dbtowel.providers.sqlite_async", "AsyncSQLiteProvider"),
    "postgresql": ("dbtowel.providers.postgresql", "PostgreSQLProvider"),
}

_ALIASES = {
    "sqlite3": "sqlite",
    "postgres": "postgresql",
    "psycopg2": "postgresql",
}


def list_providers() -> list[str]:
    """Return names of all built-in providers."""
    return list(_BUILTINS.keys())


def get_provider(name: str, connection_string: str, **options: Any) -> ProviderFactory:
    """Instantiate a built-in provider by name.

    Raises :class:`~dbtowel.errors.TowelError` (``INVALID_ARGUMENT``) for a
    missing connection string, a missing name or an unknown name.
    """
    if not connection_string:
        raise invalid_argument("connection_string", "The connection string is required.")
    if not name:
        raise invalid_argument("provider_name", "The provider name is required.")

    key = _ALIASES.get(name.lower(), name.lower())
    entry = _BUILTINS.get(key)
    if entry is None:
        raise invalid_argument(
            "provider_name",
            f"Unknown provider {name!r}. Available: {list_providers()}",
        )
    module_name, class_name = entry
    cls = getattr(importlib.import_module(module_name), class_name)
    return cls(connection_string, **options)
