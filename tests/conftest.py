"""Pytest configuration for test isolation.

Several modules read configuration from the environment (slash-date order,
model name, database URL, default user). A developer's shell or ``.env`` must
not leak into tests, so those variables are cleared for every test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from spendwise.db import Database
from tests.helpers.db import bootstrap_sqlite_db

_ENV_VARS = (
    "SPENDWISE_DATE_ORDER",
    "SPENDWISE_OPENAI_MODEL",
    "SPENDWISE_USER",
    "SPENDWISE_LOG_LEVEL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # The CLI loads .env from the working directory; run from an empty one.
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def db(tmp_path: Path) -> Iterator[Database]:
    database = bootstrap_sqlite_db(tmp_path / "db" / "spendwise.db")
    yield database
    database.dispose()
