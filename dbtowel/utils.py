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

"""Small helpers shared by the blocking and non-blocking code paths."""

from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await *value* if it is awaitable, otherwise return it as is.

    Lets callbacks be either plain functions or coroutine functions.
    """
    if inspect.isawaitable(value):
        return await value
    return value


async def release(handle: Any) -> None:
    """Close a connection, command or reader on the non-blocking path.

    Uses ``close_async()`` when the handle offers it, ``close()`` otherwise.
    """
    from dbtowel.providers.base import AsyncClosable

    if isinstance(handle, AsyncClosable):
        await handle.close_async()
    else:
        handle.close()
