"""Shared fixtures: settings, a per-test SQLite store and fake Sbanken/YNAB APIs."""

from __future__ import annotations

from pathlib import Path

import pytest

from sbanken_ynab.config import Settings
from sbanken_ynab.database import get_db
from tests.helpers.fake_apis import FakeSbankenApi, FakeYNABApi, make_settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    # Each test gets its own store file under tmp_path
    return make_settings(tmp_path)


@pytest.fixture
def db(settings: Settings):
    with get_db(settings.database_path) as session:
        yield session


@pytest.fixture
def sbanken_api() -> FakeSbankenApi:
    return FakeSbankenApi()


@pytest.fixture
def ynab_api() -> FakeYNABApi:
    return FakeYNABApi()
