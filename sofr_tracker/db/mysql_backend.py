"""MySQL / MariaDB backend strategy."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from sofr_tracker.db.relational_backend import RelationalBackend
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

# Below MySQL's default ``wait_timeout`` of eight hours.
POOL_RECYCLE_SECONDS = 3600


class MySQLBackend(RelationalBackend):
    """Relational backend for MySQL engines; upserts use ``ON DUPLICATE KEY UPDATE``."""

    def _create_engine(self) -> Engine:
        LOGGER.info("Connecting to MySQL rate store")
        return create_engine(
            self.url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=POOL_RECYCLE_SECONDS,
        )


__all__ = ["MySQLBackend"]
