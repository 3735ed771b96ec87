"""SQLite backend strategy implementation."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from sofr_tracker.db import DEFAULT_SQLITE_DB_PATH
from sofr_tracker.db.relational_backend import RelationalBackend
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)


class SQLiteBackend(RelationalBackend):
    """Backend strategy that stores rates in an on-disk SQLite database."""

    def __init__(self, db_path: str | Path = DEFAULT_SQLITE_DB_PATH) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(f"sqlite:///{self.db_path.as_posix()}")
        # Unlike the server backends the file is created eagerly, so callers can
        # read and write without an explicit ``ensure_schema`` call.
        self.ensure_schema()

    def _create_engine(self) -> Engine:
        LOGGER.info("Using SQLite database at %s", self.db_path)
        return create_engine(
            self.url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )


__all__ = ["SQLiteBackend"]
