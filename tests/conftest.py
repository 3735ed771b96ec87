from __future__ import annotations

from pathlib import Path

import pytest

from sofr_tracker.config import Settings
from sofr_tracker.db.sqlite_backend import SQLiteBackend

from upstream_fakes import FakeUpstream


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        db_url=None,
        nyfed_base_url="https://markets.test",
        fred_base_url="https://fred.test/graph/fredgraph.csv",
        http_timeout=5.0,
        lookback_days=7,
        single_flight=True,
    )


@pytest.fixture()
def backend(tmp_path: Path):
    sqlite_backend = SQLiteBackend(tmp_path / "rates.db")
    yield sqlite_backend
    sqlite_backend.close()
