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

"""Shared fixtures: a fake driver for unit tests, SQLite files for integration tests."""

from __future__ import annotations

import pytest

from dbtowel import DatabaseTowel
from fakes import FakeDriver, FakeProvider


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def towel(driver: FakeDriver) -> DatabaseTowel:
    return DatabaseTowel(provider=FakeProvider(driver))


@pytest.fixture
def async_towel(driver: FakeDriver) -> DatabaseTowel:
    return DatabaseTowel(provider=FakeProvider(driver, async_capable=True))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "towel.db")
