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

"""Success-or-error container used by the inline error handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from dbtowel.errors import TowelError
from dbtowel.utils import maybe_await


@dataclass(frozen=True)
class Result:
    """Outcome of a primitive: either a value or a :class:`TowelError`.

    Only :class:`TowelError` is captured; any other exception propagates
    from :meth:`capture` unchanged.
    """

    value: Any = None
    error: TowelError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def capture(cls, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Result:
        try:
            return cls(value=func(*args, **kwargs))
        except TowelError as exc:
            return cls(error=exc)

    @classmethod
    async def capture_async(
        cls,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Result:
        try:
            return cls(value=await func(*args, **kwargs))
        except TowelError as exc:
            return cls(error=exc)

    def unwrap(self) -> Any:
        """Return the value, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value

    def unwrap_or(self, default: Any) -> Any:
        return default if self.error is not None else self.value

    def unwrap_or_else(self, handler: Callable[[TowelError], Any]) -> Any:
        """Return the value, or whatever *handler* returns for the error."""
        if self.error is not None:
            return handler(self.error)
        return self.value

    async def unwrap_or_else_async(self, handler: Callable[[TowelError], Any]) -> Any:
        """Like :meth:`unwrap_or_else`; awaits the handler's result if needed."""
        if self.error is not None:
            return await maybe_await(handler(self.error))
        return self.value
