"""PostgreSQL backend strategy."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from sofr_tracker.db.relational_backend import RelationalBackend
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)


class PostgresBackend(RelationalBackend):
    """Relational backend for PostgreSQL; upserts use ``INSERT ... ON CONFLICT``."""

    def _create_engine(self) -> Engine:
        LOGGER.info("Connecting to PostgreSQL rate store")
        # Scheduled syncs run minutes apart; stale pooled connections are re-checked.
        return create_engine(self.url, future=True, pool_pre_ping=True)


__all__ = ["PostgresBackend"]
